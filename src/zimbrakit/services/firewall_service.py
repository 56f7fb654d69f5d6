"""UFW firewall configuration for ZimbraKit."""

import logging

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.errors import ExternalCommandError
from zimbrakit.services.command import run_command

logger = logging.getLogger(__name__)


class FirewallService:
    """Opens the ports Zimbra needs and turns UFW on."""

    def __init__(self, config: ZimbraKitConfig | None = None) -> None:
        self.config = config or get_config()
        self.ufw_bin = "ufw"

    def allow_app(self, app: str) -> str:
        """Allow a UFW application profile (e.g. OpenSSH)."""
        run_command([self.ufw_bin, "allow", app])
        return app

    def allow_port(self, port: int, proto: str = "tcp") -> str:
        """Allow inbound traffic on a single port."""
        rule = f"{port}/{proto}"
        run_command([self.ufw_bin, "allow", rule])
        return rule

    def enable(self) -> None:
        """Enable enforcement without the interactive confirmation prompt."""
        run_command([self.ufw_bin, "--force", "enable"])

    def configure(self) -> list[str]:
        """Apply every configured rule, then enable the firewall.

        Returns:
            The rules applied, in order
        """
        logger.info("Configuring UFW firewall")
        rules = [self.allow_app(app) for app in self.config.firewall_apps]
        rules.extend(self.allow_port(port) for port in self.config.firewall_ports)
        self.enable()
        logger.info(f"UFW enabled with {len(rules)} rules")
        return rules

    def status(self) -> dict[str, str | bool]:
        """Current UFW state from `ufw status`."""
        try:
            result = run_command([self.ufw_bin, "status"], check=False)
        except ExternalCommandError as e:
            if e.code != "COMMAND_NOT_FOUND":
                raise
            return {"active": False, "output": "ufw is not installed"}

        output = result.stdout.strip()
        first_line = output.splitlines()[0] if output else ""
        return {
            "active": first_line == "Status: active",
            "output": output,
        }
