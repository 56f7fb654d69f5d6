"""Post-install report shown to the operator."""

from dataclasses import dataclass, field
from typing import Any

from zimbrakit.config import ZimbraKitConfig

ADMIN_CONSOLE_PORT = 7071

RULE = "=" * 68


@dataclass
class PostInstallReport:
    """Where to log in and what DNS/mail setup is still left to do."""

    hostname: str
    domain: str
    ip_address: str
    admin_console_url: str
    webmail_url: str
    admin_account: str
    next_steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostname": self.hostname,
            "domain": self.domain,
            "ip_address": self.ip_address,
            "admin_console_url": self.admin_console_url,
            "webmail_url": self.webmail_url,
            "admin_account": self.admin_account,
            "next_steps": list(self.next_steps),
        }

    def render(self) -> str:
        """Plain-text version of the report."""
        lines = [
            "",
            RULE,
            " ZIMBRA OSE INSTALLATION COMPLETED",
            RULE,
            f"• Admin console : {self.admin_console_url}",
            f"• Webmail client: {self.webmail_url}",
            f"• Default admin : {self.admin_account}",
            "",
            "IMPORTANT NEXT STEPS:",
        ]
        for number, step in enumerate(self.next_steps, start=1):
            first, *rest = step.split("\n")
            lines.append(f" {number}) {first}")
            lines.extend(f"      {extra}" for extra in rest)
        lines.append(RULE)
        return "\n".join(lines)


def build_report(config: ZimbraKitConfig, ip_address: str) -> PostInstallReport:
    """Build the report for a host. Pure: reads config, touches nothing."""
    hostname = config.hostname
    return PostInstallReport(
        hostname=hostname,
        domain=config.domain,
        ip_address=ip_address,
        admin_console_url=f"https://{hostname}:{ADMIN_CONSOLE_PORT}",
        webmail_url=f"https://{hostname}",
        admin_account=f"admin@{config.domain}",
        next_steps=[
            f"Add DNS A record:   {hostname} → {ip_address}",
            f"(Optional) change MX record to point to {hostname} once you migrate.",
            f"Add SPF for this host:   v=spf1 mx a:{hostname} ~all",
            "Configure DKIM & DMARC inside the Zimbra Admin console.",
            "Schedule monthly cert renewal (crontab root):\n"
            f"0 3 1 * * certbot renew --quiet && {config.zmcontrol} restart",
        ],
    )
