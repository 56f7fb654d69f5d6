"""Install command: the full provisioning sequence.

Runs every step in order and stops at the first failure, leaving the host
as it is for manual inspection.
"""

import sys
from pathlib import Path

import click

from zimbrakit.config import ZimbraKitConfig
from zimbrakit.logging_utils import configure_logging
from zimbrakit.output import OutputFormatter
from zimbrakit.sequencer import ProvisionSequencer, ProvisionStep, StepResult
from zimbrakit.services.artifact_service import ArtifactService
from zimbrakit.services.installer_service import InstallerService
from zimbrakit.services.package_service import PackageService


@click.command("install")
@click.pass_context
def install(ctx: click.Context) -> None:
    """Provision this host as a Zimbra OSE mail server.

    Must run as root on Ubuntu 22.04. The Zimbra installer step is
    interactive: answer its prompts, then the certificate is requested
    and deployed automatically.

    With --json, apt and installer output goes to stderr so stdout carries
    only the JSON result.

    Example:
        sudo zimbrakit install
        sudo zimbrakit --config ./zimbra.yaml install
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    config: ZimbraKitConfig = ctx.obj["config"]

    log_path: Path | None = None

    def on_step(step: ProvisionStep) -> None:
        formatter.log(f"{step.description}...")

    def on_result(result: StepResult) -> None:
        nonlocal log_path
        if not result.success:
            formatter.fail(result.message)
            return

        # The log file is the first thing written to the host
        if result.step_id == "preflight":
            log_path = configure_logging(config.log_dir)

        if result.step_id == "download" and not result.details.get("downloaded", True):
            formatter.warn(result.message)
        else:
            formatter.log(result.message)

    stream = sys.stderr if formatter.json_mode else None
    artifacts = ArtifactService(config)
    sequencer = ProvisionSequencer(
        config,
        packages=PackageService(config, stream=stream),
        artifacts=artifacts,
        installer=InstallerService(config, artifacts, stream=stream),
        on_step=on_step,
        on_result=on_result,
        progress_factory=formatter.progress_context,
    )
    result = sequencer.run()

    if not result.success:
        failed = result.failed_step
        formatter.error(
            code=result.error_code or "PROVISION_FAILED",
            message=f"Step '{failed.step_id}' failed: {result.error}",
            suggestion=result.suggestion,
            data=result.to_dict(),
        )
        return

    data = result.to_dict()
    if log_path is not None:
        data["log_file"] = str(log_path)
    formatter.report(result.report, data=data, message=f"Zimbra OSE provisioned on {config.hostname}")
