"""Let's Encrypt certificates for the Zimbra mail host."""

import logging
import re
from dataclasses import dataclass
from typing import Any

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.errors import ExternalCommandError, NetworkError
from zimbrakit.services.command import CommandResult, run_command

logger = logging.getLogger(__name__)


@dataclass
class CertificateInfo:
    """Information about a certbot-managed certificate."""

    name: str
    domains: list[str]
    expiry: str
    days_remaining: int
    certificate_path: str
    key_path: str

    @property
    def status(self) -> str:
        if self.days_remaining < 0:
            return "expired"
        if self.days_remaining < 7:
            return "critical"
        if self.days_remaining < 30:
            return "warning"
        return "valid"


def parse_certbot_certificates(output: str) -> list[CertificateInfo]:
    """Parse the text printed by `certbot certificates`."""
    certificates: list[CertificateInfo] = []
    current: dict[str, Any] = {}

    def flush() -> None:
        if not current:
            return
        name = current["name"]
        certificates.append(
            CertificateInfo(
                name=name,
                domains=current.get("domains", [name]),
                expiry=current.get("expiry", ""),
                days_remaining=current.get("days_remaining", 0),
                certificate_path=current.get(
                    "cert_path", f"/etc/letsencrypt/live/{name}/fullchain.pem"
                ),
                key_path=current.get("key_path", f"/etc/letsencrypt/live/{name}/privkey.pem"),
            )
        )

    for line in output.splitlines():
        line = line.strip()

        if line.startswith("Certificate Name:"):
            flush()
            current = {"name": line.split(":", 1)[1].strip()}

        elif line.startswith("Domains:"):
            current["domains"] = line.split(":", 1)[1].split()

        elif line.startswith("Expiry Date:"):
            # "Expiry Date: 2025-03-12 10:30:00+00:00 (VALID: 89 days)"
            match = re.search(r"(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})", line)
            if match:
                current["expiry"] = match.group(1)
            days_match = re.search(r"\(VALID: (\d+) days?\)", line)
            current["days_remaining"] = int(days_match.group(1)) if days_match else -1

        elif line.startswith("Certificate Path:"):
            current["cert_path"] = line.split(":", 1)[1].strip()

        elif line.startswith("Private Key Path:"):
            current["key_path"] = line.split(":", 1)[1].strip()

    flush()
    return certificates


class SSLService:
    """Issues, deploys and renews the mail host certificate."""

    def __init__(self, config: ZimbraKitConfig | None = None) -> None:
        self.config = config or get_config()
        self.certbot_bin = "certbot"

    def _certbot(self, args: list[str]) -> CommandResult:
        """Run certbot, mapping failures to NetworkError.

        Certbot fails mostly on the CA round-trip, so non-zero exits are
        classified from its output.
        """
        try:
            return run_command(
                [self.certbot_bin, *args],
                timeout=self.config.certbot_timeout,
            )
        except ExternalCommandError as e:
            if e.code == "COMMAND_NOT_FOUND":
                e.suggestion = "Install certbot with 'apt install certbot'"
                raise
            if e.code == "COMMAND_TIMEOUT":
                raise NetworkError(
                    "Certificate request timed out",
                    code="CERT_ISSUANCE_TIMEOUT",
                    suggestion="Check network connectivity and try again",
                )
            raise self._classify_failure(e.message)

    def _classify_failure(self, error_msg: str) -> NetworkError:
        hostname = self.config.hostname
        lowered = error_msg.lower()
        if "DNS problem" in error_msg or "NXDOMAIN" in error_msg:
            return NetworkError(
                f"DNS is not configured for '{hostname}'",
                code="DNS_ERROR",
                suggestion=(
                    f"Point the A record for {hostname} at this server before requesting a certificate"
                ),
            )
        if "rate limit" in lowered:
            return NetworkError(
                "Let's Encrypt rate limit reached",
                code="RATE_LIMITED",
                suggestion="Wait before trying again",
            )
        if "connection refused" in lowered or "timeout during connect" in lowered:
            return NetworkError(
                "Let's Encrypt could not reach this server to validate the domain",
                code="CONNECTION_REFUSED",
                suggestion="Ensure port 80 is open and nothing else is listening on it",
            )
        return NetworkError(
            f"Certificate issuance failed: {error_msg}",
            code="CERT_ISSUANCE_FAILED",
            suggestion="Check domain DNS and firewall settings",
        )

    def issue(self) -> dict[str, str]:
        """Request a certificate for the hostname with a standalone challenge.

        Raises:
            NetworkError: If certbot cannot obtain the certificate
            ExternalCommandError: If certbot is not installed
        """
        hostname = self.config.hostname
        logger.info(f"Requesting Let's Encrypt certificate for {hostname}")
        self._certbot(
            [
                "certonly",
                "--standalone",
                "-d",
                hostname,
                "--non-interactive",
                "--agree-tos",
                "--email",
                self.config.certbot_email,
            ]
        )
        paths = self.config.certificate_paths
        return {
            "domain": hostname,
            "certificate_path": str(paths.fullchain),
            "key_path": str(paths.privkey),
        }

    def deploy(self) -> None:
        """Hand the key, certificate and chain to zmcertmgr.

        Raises:
            ExternalCommandError: If zmcertmgr is missing or fails
        """
        paths = self.config.certificate_paths
        logger.info("Deploying certificate to Zimbra")
        run_command(
            [
                self.config.zmcertmgr,
                "deploycrt",
                "comm",
                paths.privkey,
                paths.cert,
                paths.fullchain,
            ]
        )

    def restart_mail(self) -> None:
        """Restart all Zimbra services as the zimbra user."""
        logger.info("Restarting Zimbra services")
        run_command(["su", "-", self.config.zimbra_user, "-c", "zmcontrol restart"])

    def issue_and_deploy(self) -> dict[str, str]:
        """Issue, deploy, restart. Stops at the first failure."""
        result = self.issue()
        self.deploy()
        self.restart_mail()
        logger.info("Certificate deployed and Zimbra restarted")
        return result

    def renew(self, force: bool = False) -> dict[str, Any]:
        """Renew the hostname's certificate, then redeploy and restart Zimbra."""
        args = ["renew", "--cert-name", self.config.hostname]
        if force:
            args.append("--force-renewal")

        result = self._certbot(args)
        output = result.stdout
        renewed = "Congratulations" in output or force

        if renewed:
            self.deploy()
            self.restart_mail()

        return {
            "domain": self.config.hostname,
            "renewed": renewed,
            "redeployed": renewed,
            "message": (
                "Certificate renewed and redeployed"
                if renewed
                else "Certificate not yet due for renewal"
            ),
        }

    def list_certificates(self) -> list[CertificateInfo]:
        """All certificates certbot knows about."""
        result = run_command([self.certbot_bin, "certificates"], check=False, timeout=60)
        if result.returncode != 0:
            return []
        return parse_certbot_certificates(result.stdout)

    def certificate_status(self) -> dict[str, Any]:
        """Status of the certificate covering the configured hostname."""
        hostname = self.config.hostname
        for cert in self.list_certificates():
            if cert.name == hostname or hostname in cert.domains:
                return {
                    "domain": hostname,
                    "status": cert.status,
                    "days_remaining": cert.days_remaining,
                    "expires": cert.expiry,
                    "certificate_path": cert.certificate_path,
                    "key_path": cert.key_path,
                }

        return {
            "domain": hostname,
            "status": "not_provisioned",
            "days_remaining": 0,
            "expires": None,
            "certificate_path": None,
            "key_path": None,
        }
