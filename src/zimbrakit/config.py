"""Configuration management for ZimbraKit."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from zimbrakit.errors import ConfigError

DEFAULT_CONFIG_FILE = Path("/etc/zimbrakit/config.yaml")

DEFAULT_PACKAGES = (
    "net-tools",
    "curl",
    "sudo",
    "unzip",
    "libgmp10",
    "libperl5.34",
    "ufw",
    "certbot",
)

# SSH, SMTP, POP3, IMAP, SMTPS, submission, IMAPS, POP3S, admin console, HTTP, HTTPS
DEFAULT_FIREWALL_PORTS = (22, 25, 110, 143, 465, 587, 993, 995, 7071, 80, 443)

# Environment overrides, applied after the YAML file
ENV_OVERRIDES = {
    "ZIMBRAKIT_HOSTNAME": "hostname",
    "ZIMBRAKIT_DOMAIN": "domain",
    "ZIMBRAKIT_ADMIN_EMAIL": "certbot_email",
}


@dataclass(frozen=True)
class CertificatePaths:
    """Let's Encrypt output files for one certificate name."""

    privkey: Path
    cert: Path
    fullchain: Path


@dataclass(frozen=True)
class ZimbraKitConfig:
    """ZimbraKit configuration settings.

    Built once at process start and never mutated afterwards.
    """

    # Identity
    hostname: str = "zimbra.mge.co.id"
    domain: str = "mge.co.id"
    host_alias: str = "zimbra"

    # Installer bundle
    zimbra_tgz: str = "zcs-9.0.0_OSE_UBUNTU22_latest.tgz"
    download_base_url: str = "https://download.zextras.com"
    install_dir: Path = field(default_factory=lambda: Path("/opt"))
    download_timeout: int = 60

    # Firewall
    firewall_ports: tuple[int, ...] = DEFAULT_FIREWALL_PORTS
    firewall_apps: tuple[str, ...] = ("OpenSSH",)

    # Packages
    packages: tuple[str, ...] = DEFAULT_PACKAGES

    # Let's Encrypt
    certbot_email: str | None = None
    certbot_timeout: int = 300
    letsencrypt_live: Path = field(default_factory=lambda: Path("/etc/letsencrypt/live"))

    # Zimbra
    zimbra_home: Path = field(default_factory=lambda: Path("/opt/zimbra"))
    zimbra_user: str = "zimbra"

    # Host
    expected_os: str = "Ubuntu 22.04"
    os_release_path: Path = field(default_factory=lambda: Path("/etc/os-release"))
    hosts_file: Path = field(default_factory=lambda: Path("/etc/hosts"))
    log_dir: Path = field(default_factory=lambda: Path("/var/log/zimbrakit"))

    def __post_init__(self) -> None:
        """Normalize field types after loading from YAML."""
        path_fields = [
            "install_dir",
            "letsencrypt_live",
            "zimbra_home",
            "os_release_path",
            "hosts_file",
            "log_dir",
        ]
        for field_name in path_fields:
            value = getattr(self, field_name)
            if isinstance(value, str):
                object.__setattr__(self, field_name, Path(value))

        for field_name in ("firewall_ports", "firewall_apps", "packages"):
            value = getattr(self, field_name)
            if not isinstance(value, (list, tuple)):
                raise ConfigError(
                    f"'{field_name}' must be a list, got {type(value).__name__}: {value!r}",
                    suggestion=f"Write it as a YAML list, e.g. '{field_name}: [...]'",
                )
            object.__setattr__(self, field_name, tuple(value))

        object.__setattr__(
            self, "firewall_ports", tuple(int(port) for port in self.firewall_ports)
        )

        if not self.certbot_email:
            object.__setattr__(self, "certbot_email", f"admin@{self.domain}")

    @property
    def download_url(self) -> str:
        return f"{self.download_base_url.rstrip('/')}/{self.zimbra_tgz}"

    @property
    def archive_path(self) -> Path:
        return self.install_dir / self.zimbra_tgz

    @property
    def zmcertmgr(self) -> Path:
        return self.zimbra_home / "bin" / "zmcertmgr"

    @property
    def zmcontrol(self) -> Path:
        return self.zimbra_home / "bin" / "zmcontrol"

    @property
    def certificate_paths(self) -> CertificatePaths:
        live = self.letsencrypt_live / self.hostname
        return CertificatePaths(
            privkey=live / "privkey.pem",
            cert=live / "cert.pem",
            fullchain=live / "fullchain.pem",
        )

    @classmethod
    def load(cls, config_path: Path | None = None) -> "ZimbraKitConfig":
        """Load configuration from YAML file and environment, falling back to defaults.

        A missing file means defaults. A file that exists but cannot be read or
        parsed is an error: provisioning the wrong host is worse than stopping.
        """
        if config_path is None:
            config_path = Path(os.environ.get("ZIMBRAKIT_CONFIG", DEFAULT_CONFIG_FILE))

        data: dict[str, Any] = {}
        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = yaml.safe_load(f) or {}
            except (yaml.YAMLError, OSError) as e:
                raise ConfigError(
                    f"Cannot read configuration file {config_path}: {e}",
                    suggestion="Fix the YAML syntax or remove the file to use defaults",
                )
            if not isinstance(data, dict):
                raise ConfigError(
                    f"Configuration file {config_path} must contain a mapping",
                    suggestion="Use 'key: value' lines, e.g. 'hostname: mail.example.com'",
                )

        for env_var, field_name in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                data[field_name] = value

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "ZimbraKitConfig":
        """Create config from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}

        try:
            return cls(**kwargs)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}")

    def to_dict(self) -> dict[str, Any]:
        """Effective configuration, for display."""
        return {
            "hostname": self.hostname,
            "domain": self.domain,
            "host_alias": self.host_alias,
            "download_url": self.download_url,
            "install_dir": str(self.install_dir),
            "firewall_ports": ", ".join(str(p) for p in self.firewall_ports),
            "packages": " ".join(self.packages),
            "certbot_email": self.certbot_email,
            "expected_os": self.expected_os,
            "zimbra_home": str(self.zimbra_home),
        }


# Global config instance (loaded lazily)
_config: ZimbraKitConfig | None = None


def get_config() -> ZimbraKitConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ZimbraKitConfig.load()
    return _config


def reload_config(config_path: Path | None = None) -> ZimbraKitConfig:
    """Reload configuration from file."""
    global _config
    _config = ZimbraKitConfig.load(config_path)
    return _config
