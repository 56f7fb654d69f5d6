"""Main CLI entry point for ZimbraKit."""

from pathlib import Path

import click

from zimbrakit import __version__
from zimbrakit.config import reload_config
from zimbrakit.errors import ConfigError
from zimbrakit.output import OutputFormatter


@click.group()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="ZIMBRAKIT_CONFIG",
    help="Path to config YAML (default: /etc/zimbrakit/config.yaml)",
)
@click.version_option(version=__version__, prog_name="zimbrakit")
@click.pass_context
def cli(ctx: click.Context, output_json: bool, config_path: Path | None) -> None:
    """ZimbraKit - Zimbra OSE provisioning for Ubuntu 22.04.

    Sets the hostname, installs packages, opens the firewall, runs the
    Zimbra installer and deploys a Let's Encrypt certificate.
    Use --json flag for machine-readable output.

    Settings (hostname, domain, download URL, ports, contact email) come
    from the config file; edit it before running 'zimbrakit install'.
    """
    ctx.ensure_object(dict)
    formatter = OutputFormatter(json_mode=output_json)
    ctx.obj["formatter"] = formatter
    ctx.obj["json_mode"] = output_json

    try:
        ctx.obj["config"] = reload_config(config_path)
    except ConfigError as e:
        formatter.error(e.code, e.message, e.suggestion)


# Import and register commands
from zimbrakit.commands.install import install  # noqa: E402
from zimbrakit.commands.check import check  # noqa: E402
from zimbrakit.commands.report import report  # noqa: E402
from zimbrakit.commands.steps import steps  # noqa: E402
from zimbrakit.commands import ssl  # noqa: E402

cli.add_command(install)
cli.add_command(check)
cli.add_command(report)
cli.add_command(steps)
cli.add_command(ssl.ssl)
