"""Host-level checks and hostname configuration for ZimbraKit."""

import logging
import os
from dataclasses import dataclass

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.errors import (
    ExternalCommandError,
    PermissionDeniedError,
    UnsupportedPlatformError,
)
from zimbrakit.services.command import run_command

logger = logging.getLogger(__name__)


@dataclass
class HostnameResult:
    """Result of the hostname step."""

    hostname: str
    ip_address: str
    hosts_entry_added: bool

    def to_dict(self) -> dict[str, str | bool]:
        return {
            "hostname": self.hostname,
            "ip_address": self.ip_address,
            "hosts_entry_added": self.hosts_entry_added,
        }


class SystemService:
    """Privilege/OS preconditions and hostname management."""

    def __init__(self, config: ZimbraKitConfig | None = None) -> None:
        self.config = config or get_config()

    def check_privileges(self) -> None:
        """Ensure the process runs as root.

        Raises:
            PermissionDeniedError: If the effective uid is not 0
        """
        if os.geteuid() != 0:
            raise PermissionDeniedError(
                "Please run this command as root (use sudo).",
                suggestion="sudo zimbrakit install",
            )

    def check_platform(self) -> None:
        """Ensure the host is the supported distribution/version.

        Raises:
            UnsupportedPlatformError: If os-release lacks the expected string
        """
        expected = self.config.expected_os
        path = self.config.os_release_path
        try:
            os_release = path.read_text()
        except OSError as e:
            raise UnsupportedPlatformError(
                f"Cannot determine OS from {path}: {e}",
                suggestion=f"Only {expected} is supported",
            )

        if expected not in os_release:
            raise UnsupportedPlatformError(
                f"Unsupported OS. Only {expected} is supported.",
                suggestion=f"Run ZimbraKit on a fresh {expected} host",
            )

    def check_preconditions(self) -> None:
        """Privilege check first, then the platform check."""
        self.check_privileges()
        self.check_platform()

    def set_hostname(self) -> None:
        """Set the system hostname to the configured FQDN."""
        logger.info(f"Setting hostname to {self.config.hostname}")
        run_command(["hostnamectl", "set-hostname", self.config.hostname])

    def get_local_ip(self) -> str:
        """Return the first address reported by `hostname -I`.

        Raises:
            ExternalCommandError: If the host reports no address
        """
        result = run_command(["hostname", "-I"])
        addresses = result.stdout.split()
        if not addresses:
            raise ExternalCommandError(
                "Could not determine the local IP address ('hostname -I' was empty)",
                code="NO_IP_ADDRESS",
                suggestion="Check that a network interface is up and has an address",
                argv=result.argv,
                returncode=result.returncode,
            )
        return addresses[0]

    def has_hosts_entry(self) -> bool:
        """Check whether any hosts line mentions the hostname."""
        hosts_file = self.config.hosts_file
        if not hosts_file.exists():
            return False
        return self.config.hostname in hosts_file.read_text()

    def ensure_hosts_entry(self, ip_address: str) -> bool:
        """Append `<ip> <hostname> <alias>` unless the hostname is already present.

        An existing line is left untouched even if it maps a different IP.

        Returns:
            True if a line was appended
        """
        if self.has_hosts_entry():
            logger.info(f"{self.config.hosts_file} already has an entry for {self.config.hostname}")
            return False

        hosts_file = self.config.hosts_file
        line = f"{ip_address} {self.config.hostname} {self.config.host_alias}\n"
        # Keep the new entry on its own line
        existing = hosts_file.read_text() if hosts_file.exists() else ""
        if existing and not existing.endswith("\n"):
            line = "\n" + line
        with open(hosts_file, "a") as f:
            f.write(line)
        logger.info(f"Added hosts entry: {line.strip()}")
        return True

    def configure_hostname(self) -> HostnameResult:
        """Set the hostname and make sure it resolves locally."""
        self.set_hostname()
        ip_address = self.get_local_ip()
        added = self.ensure_hosts_entry(ip_address)
        return HostnameResult(
            hostname=self.config.hostname,
            ip_address=ip_address,
            hosts_entry_added=added,
        )
