"""Preflight check command for ZimbraKit."""

import click

from zimbrakit.config import ZimbraKitConfig
from zimbrakit.errors import ProvisionError
from zimbrakit.output import OutputFormatter
from zimbrakit.services.firewall_service import FirewallService
from zimbrakit.services.system_service import SystemService


@click.command("check")
@click.pass_context
def check(ctx: click.Context) -> None:
    """Run the privilege and OS checks without changing anything.

    Prints the effective configuration that 'zimbrakit install' would use.

    Example:
        sudo zimbrakit check
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    config: ZimbraKitConfig = ctx.obj["config"]
    service = SystemService(config)

    try:
        service.check_privileges()
        service.check_platform()
        firewall = FirewallService(config).status()
    except ProvisionError as e:
        formatter.error(e.code, e.message, e.suggestion)
        return

    formatter.status_panel(
        "ZimbraKit Preflight",
        {
            "checks": {
                "root": "ok",
                "platform": "ok",
                "firewall_active": firewall["active"],
                "hosts_entry_present": service.has_hosts_entry(),
                "archive_present": config.archive_path.exists(),
            },
            "configuration": config.to_dict(),
        },
        message="Preflight checks passed",
    )
