"""Certificate management CLI commands for ZimbraKit."""

import click

from zimbrakit.config import ZimbraKitConfig
from zimbrakit.errors import ProvisionError
from zimbrakit.logging_utils import configure_logging
from zimbrakit.output import OutputFormatter
from zimbrakit.services.ssl_service import SSLService
from zimbrakit.services.system_service import SystemService


@click.group()
@click.pass_context
def ssl(ctx: click.Context) -> None:
    """Let's Encrypt certificate for the mail host.

    Check and renew the certificate deployed to Zimbra.
    """
    pass


@ssl.command("status")
@click.pass_context
def ssl_status(ctx: click.Context) -> None:
    """Show certificate status for the configured hostname.

    Example:
        sudo zimbrakit ssl status
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    config: ZimbraKitConfig = ctx.obj["config"]
    service = SSLService(config)

    try:
        status = service.certificate_status()
    except ProvisionError as e:
        formatter.error(e.code, e.message, e.suggestion)
        return

    formatter.status_panel(
        "Certificate Status",
        {"certificate": status},
        message=f"Certificate status for '{config.hostname}'",
    )


@ssl.command("renew")
@click.option("--force", is_flag=True, help="Force renewal even if not due")
@click.pass_context
def ssl_renew(ctx: click.Context, force: bool) -> None:
    """Renew the certificate and redeploy it to Zimbra.

    Zimbra is restarted only when a new certificate was issued.
    Suitable for a monthly root cron job.

    Example:
        sudo zimbrakit ssl renew
        sudo zimbrakit ssl renew --force
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    config: ZimbraKitConfig = ctx.obj["config"]

    try:
        SystemService(config).check_privileges()
        configure_logging(config.log_dir)
        result = SSLService(config).renew(force=force)
    except ProvisionError as e:
        formatter.error(e.code, e.message, e.suggestion)
        return

    formatter.success(data=result, message=result["message"])
