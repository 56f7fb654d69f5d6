"""Tests for configuration loading."""

from pathlib import Path

import pytest

from zimbrakit.config import DEFAULT_FIREWALL_PORTS, ZimbraKitConfig
from zimbrakit.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment overrides out of the tests."""
    for var in ("ZIMBRAKIT_CONFIG", "ZIMBRAKIT_HOSTNAME", "ZIMBRAKIT_DOMAIN", "ZIMBRAKIT_ADMIN_EMAIL"):
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    """Tests for built-in defaults."""

    def test_defaults(self):
        """Test the defaults match a stock Zimbra 9 OSE install."""
        config = ZimbraKitConfig()

        assert config.hostname == "zimbra.mge.co.id"
        assert config.domain == "mge.co.id"
        assert config.firewall_ports == DEFAULT_FIREWALL_PORTS
        assert config.certbot_email == "admin@mge.co.id"
        assert config.download_url == (
            "https://download.zextras.com/zcs-9.0.0_OSE_UBUNTU22_latest.tgz"
        )
        assert config.archive_path == Path("/opt/zcs-9.0.0_OSE_UBUNTU22_latest.tgz")

    def test_certificate_paths(self):
        """Test Let's Encrypt paths are derived from the hostname."""
        config = ZimbraKitConfig(hostname="mail.example.com")

        paths = config.certificate_paths

        assert paths.privkey == Path("/etc/letsencrypt/live/mail.example.com/privkey.pem")
        assert paths.cert == Path("/etc/letsencrypt/live/mail.example.com/cert.pem")
        assert paths.fullchain == Path("/etc/letsencrypt/live/mail.example.com/fullchain.pem")

    def test_frozen(self):
        """Test the config cannot be changed after construction."""
        config = ZimbraKitConfig()

        with pytest.raises(AttributeError):
            config.hostname = "other.example.com"

    def test_explicit_email_kept(self):
        """Test an explicit contact email is not replaced by the default."""
        config = ZimbraKitConfig(domain="example.com", certbot_email="ops@example.com")

        assert config.certbot_email == "ops@example.com"


class TestLoad:
    """Tests for ZimbraKitConfig.load."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a missing file falls back to defaults."""
        config = ZimbraKitConfig.load(tmp_path / "missing.yaml")

        assert config == ZimbraKitConfig()

    def test_yaml_values(self, tmp_path):
        """Test values and types from YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "hostname: mail.example.com\n"
            "domain: example.com\n"
            "install_dir: /srv/zimbra\n"
            "firewall_ports: [22, '25', 443]\n"
            "packages: [curl, ufw]\n"
            "unknown_key: ignored\n"
        )

        config = ZimbraKitConfig.load(path)

        assert config.hostname == "mail.example.com"
        assert config.install_dir == Path("/srv/zimbra")
        assert config.firewall_ports == (22, 25, 443)
        assert config.packages == ("curl", "ufw")
        assert config.certbot_email == "admin@example.com"

    def test_env_overrides(self, tmp_path, monkeypatch):
        """Test environment variables override the file."""
        path = tmp_path / "config.yaml"
        path.write_text("hostname: mail.example.com\ndomain: example.com\n")
        monkeypatch.setenv("ZIMBRAKIT_HOSTNAME", "mx.example.org")
        monkeypatch.setenv("ZIMBRAKIT_ADMIN_EMAIL", "certs@example.org")

        config = ZimbraKitConfig.load(path)

        assert config.hostname == "mx.example.org"
        assert config.domain == "example.com"
        assert config.certbot_email == "certs@example.org"

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML is an error, not a silent fallback."""
        path = tmp_path / "config.yaml"
        path.write_text("hostname: [unclosed\n")

        with pytest.raises(ConfigError) as exc:
            ZimbraKitConfig.load(path)

        assert exc.value.code == "CONFIG_INVALID"

    def test_non_mapping(self, tmp_path):
        """Test a YAML list is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- hostname\n- domain\n")

        with pytest.raises(ConfigError):
            ZimbraKitConfig.load(path)

    def test_bad_port(self, tmp_path):
        """Test a non-numeric port is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("firewall_ports: [22, smtp]\n")

        with pytest.raises(ConfigError):
            ZimbraKitConfig.load(path)

    @pytest.mark.parametrize(
        "line, field_name",
        [
            ('firewall_ports: "2525"\n', "firewall_ports"),
            ("firewall_ports: 2525\n", "firewall_ports"),
            ('packages: "curl ufw"\n', "packages"),
            ("firewall_apps: OpenSSH\n", "firewall_apps"),
        ],
    )
    def test_scalar_for_list_setting(self, tmp_path, line, field_name):
        """Test a plain string or number where a list belongs is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text(line)

        with pytest.raises(ConfigError) as exc:
            ZimbraKitConfig.load(path)

        assert exc.value.code == "CONFIG_INVALID"
        assert field_name in exc.value.message
