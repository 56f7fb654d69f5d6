"""Provisioning sequence for a Zimbra OSE host.

Runs a fixed, ordered list of named steps against the host and stops at the
first one that fails. Nothing is rolled back: the host is left in whatever
state the failing step reached so it can be inspected by hand.

Steps:
1. Privilege & OS precondition checks
2. Hostname configuration
3. Package index update/upgrade
4. Dependency installation
5. Firewall rules and activation
6. Installer bundle download + extraction
7. Interactive Zimbra installer (blocks on the operator)
8. Certificate issuance, deployment and service restart
9. Post-install report
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from rich.progress import Progress

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.errors import ProvisionError
from zimbrakit.services.artifact_service import ArtifactService
from zimbrakit.services.firewall_service import FirewallService
from zimbrakit.services.installer_service import InstallerService
from zimbrakit.services.package_service import PackageService
from zimbrakit.services.report_service import PostInstallReport, build_report
from zimbrakit.services.ssl_service import SSLService
from zimbrakit.services.system_service import SystemService

logger = logging.getLogger(__name__)


@dataclass
class StepResult:
    """Outcome of one step, checked by the sequencer before moving on."""

    step_id: str
    success: bool
    message: str = ""
    error_code: str | None = None
    error_kind: str | None = None
    suggestion: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls, step_id: str, message: str, details: dict[str, Any] | None = None
    ) -> "StepResult":
        return cls(step_id=step_id, success=True, message=message, details=details or {})

    @classmethod
    def failed(cls, step_id: str, error: ProvisionError) -> "StepResult":
        return cls(
            step_id=step_id,
            success=False,
            message=error.message,
            error_code=error.code,
            error_kind=error.kind,
            suggestion=error.suggestion,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "step": self.step_id,
            "success": self.success,
            "message": self.message,
        }
        if self.details:
            data["details"] = self.details
        if not self.success:
            data["error_code"] = self.error_code
            data["error_kind"] = self.error_kind
            data["suggestion"] = self.suggestion
        return data


@dataclass
class ProvisionContext:
    """Config and services shared by every step, plus values steps hand forward."""

    config: ZimbraKitConfig
    system: SystemService
    packages: PackageService
    firewall: FirewallService
    artifacts: ArtifactService
    installer: InstallerService
    ssl: SSLService
    progress_factory: Callable[[], Progress] | None = None
    ip_address: str | None = None
    report: PostInstallReport | None = None


@dataclass(frozen=True)
class ProvisionStep:
    """A named step. The action returns a StepResult or raises ProvisionError."""

    step_id: str
    description: str
    action: Callable[[ProvisionContext], StepResult]

    def execute(self, ctx: ProvisionContext) -> StepResult:
        try:
            return self.action(ctx)
        except ProvisionError as e:
            logger.error(f"Step {self.step_id} failed [{e.code}]: {e.message}")
            return StepResult.failed(self.step_id, e)


@dataclass
class ProvisionResult:
    """Result of a provisioning run."""

    hostname: str
    domain: str
    success: bool = False
    steps_completed: list[str] = field(default_factory=list)
    steps_failed: list[str] = field(default_factory=list)
    current_step: str | None = None
    results: list[StepResult] = field(default_factory=list)
    report: PostInstallReport | None = None
    error: str | None = None
    error_code: str | None = None
    suggestion: str | None = None

    @property
    def failed_step(self) -> StepResult | None:
        for result in self.results:
            if not result.success:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostname": self.hostname,
            "domain": self.domain,
            "success": self.success,
            "steps_completed": self.steps_completed,
            "steps_failed": self.steps_failed,
            "results": [r.to_dict() for r in self.results],
            "report": self.report.to_dict() if self.report else None,
            "error": self.error,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
        }


# --- Step actions ---------------------------------------------------------


def check_preconditions(ctx: ProvisionContext) -> StepResult:
    ctx.system.check_preconditions()
    return StepResult.ok(
        "preflight",
        f"Running as root on {ctx.config.expected_os}",
    )


def configure_hostname(ctx: ProvisionContext) -> StepResult:
    result = ctx.system.configure_hostname()
    ctx.ip_address = result.ip_address
    if result.hosts_entry_added:
        message = f"Hostname set to {result.hostname} ({result.ip_address} added to hosts)"
    else:
        message = f"Hostname set to {result.hostname} (hosts entry already present)"
    return StepResult.ok("hostname", message, result.to_dict())


def update_system(ctx: ProvisionContext) -> StepResult:
    ctx.packages.update_and_upgrade()
    return StepResult.ok("system_update", "System packages updated")


def install_dependencies(ctx: ProvisionContext) -> StepResult:
    installed = ctx.packages.install()
    return StepResult.ok(
        "dependencies",
        f"Installed {len(installed)} packages",
        {"packages": installed},
    )


def configure_firewall(ctx: ProvisionContext) -> StepResult:
    rules = ctx.firewall.configure()
    return StepResult.ok("firewall", f"UFW enabled with {len(rules)} rules", {"rules": rules})


def acquire_installer(ctx: ProvisionContext) -> StepResult:
    if ctx.progress_factory is not None:
        with ctx.progress_factory() as progress:
            result = ctx.artifacts.acquire(progress)
    else:
        result = ctx.artifacts.acquire()

    if result.downloaded:
        message = f"Downloaded and extracted {result.archive_path.name}"
    else:
        message = "Package already exists, skipping download."
    return StepResult.ok("download", message, result.to_dict())


def run_installer(ctx: ProvisionContext) -> StepResult:
    workdir = ctx.installer.run()
    return StepResult.ok(
        "installer",
        "Zimbra installer finished (interactive phase)",
        {"installer_dir": str(workdir)},
    )


def deploy_certificate(ctx: ProvisionContext) -> StepResult:
    result = ctx.ssl.issue_and_deploy()
    return StepResult.ok("certificate", "Certificate deployed and Zimbra restarted", result)


def write_report(ctx: ProvisionContext) -> StepResult:
    ip_address = ctx.ip_address or ctx.system.get_local_ip()
    ctx.report = build_report(ctx.config, ip_address)
    return StepResult.ok("report", "Post-install report ready", ctx.report.to_dict())


def build_steps() -> list[ProvisionStep]:
    """The provisioning steps, in the order they must run."""
    return [
        ProvisionStep("preflight", "Checking privileges and operating system", check_preconditions),
        ProvisionStep("hostname", "Setting hostname", configure_hostname),
        ProvisionStep("system_update", "Updating system packages", update_system),
        ProvisionStep("dependencies", "Installing dependencies", install_dependencies),
        ProvisionStep("firewall", "Configuring UFW firewall", configure_firewall),
        ProvisionStep("download", "Downloading Zimbra OSE package", acquire_installer),
        ProvisionStep("installer", "Launching interactive Zimbra installer", run_installer),
        ProvisionStep("certificate", "Requesting and deploying Let's Encrypt certificate", deploy_certificate),
        ProvisionStep("report", "Preparing post-install report", write_report),
    ]


class ProvisionSequencer:
    """Drives the steps in order and halts on the first failure."""

    def __init__(
        self,
        config: ZimbraKitConfig | None = None,
        *,
        steps: list[ProvisionStep] | None = None,
        system: SystemService | None = None,
        packages: PackageService | None = None,
        firewall: FirewallService | None = None,
        artifacts: ArtifactService | None = None,
        installer: InstallerService | None = None,
        ssl: SSLService | None = None,
        on_step: Callable[[ProvisionStep], None] | None = None,
        on_result: Callable[[StepResult], None] | None = None,
        progress_factory: Callable[[], Progress] | None = None,
    ) -> None:
        self.config = config or get_config()
        self.steps = steps if steps is not None else build_steps()
        self.on_step = on_step
        self.on_result = on_result

        artifacts = artifacts or ArtifactService(self.config)
        self.context = ProvisionContext(
            config=self.config,
            system=system or SystemService(self.config),
            packages=packages or PackageService(self.config),
            firewall=firewall or FirewallService(self.config),
            artifacts=artifacts,
            installer=installer or InstallerService(self.config, artifacts),
            ssl=ssl or SSLService(self.config),
            progress_factory=progress_factory,
        )

    def run(self) -> ProvisionResult:
        """Run every step in order, stopping at the first failed result."""
        result = ProvisionResult(hostname=self.config.hostname, domain=self.config.domain)

        for step in self.steps:
            result.current_step = step.step_id
            logger.info(f"Running step {step.step_id}: {step.description}")
            if self.on_step is not None:
                self.on_step(step)

            step_result = step.execute(self.context)
            result.results.append(step_result)
            if self.on_result is not None:
                self.on_result(step_result)

            if not step_result.success:
                result.steps_failed.append(step.step_id)
                result.error = step_result.message
                result.error_code = step_result.error_code
                result.suggestion = step_result.suggestion
                logger.error(f"Provisioning halted at step {step.step_id}")
                return result

            result.steps_completed.append(step.step_id)

        result.current_step = None
        result.report = self.context.report
        result.success = True
        logger.info("Provisioning completed")
        return result
