"""Post-install report command for ZimbraKit."""

import click

from zimbrakit.config import ZimbraKitConfig
from zimbrakit.errors import ProvisionError
from zimbrakit.output import OutputFormatter
from zimbrakit.services.report_service import build_report
from zimbrakit.services.system_service import SystemService


@click.command("report")
@click.pass_context
def report(ctx: click.Context) -> None:
    """Print the post-install report for this host.

    Shows the admin and webmail URLs plus the DNS, SPF, DKIM/DMARC and
    renewal steps. Read-only.
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    config: ZimbraKitConfig = ctx.obj["config"]

    try:
        ip_address = SystemService(config).get_local_ip()
    except ProvisionError as e:
        formatter.error(e.code, e.message, e.suggestion)
        return

    formatter.report(build_report(config, ip_address), message="Post-install report")
