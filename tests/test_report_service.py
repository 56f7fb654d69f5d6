"""Tests for the post-install report."""

from zimbrakit.config import ZimbraKitConfig
from zimbrakit.services.report_service import build_report


class TestBuildReport:
    """Tests for build_report."""

    def test_fields(self):
        """Test URLs and admin account."""
        config = ZimbraKitConfig(hostname="mail.example.com", domain="example.com")

        report = build_report(config, "203.0.113.10")

        assert report.admin_console_url == "https://mail.example.com:7071"
        assert report.webmail_url == "https://mail.example.com"
        assert report.admin_account == "admin@example.com"

    def test_render_contains_host_details(self):
        """Test the rendered text names the hostname, domain and IP."""
        config = ZimbraKitConfig(hostname="mail.example.com", domain="example.com")

        text = build_report(config, "203.0.113.10").render()

        assert "mail.example.com" in text
        assert "example.com" in text
        assert "203.0.113.10" in text
        assert "Add DNS A record:   mail.example.com → 203.0.113.10" in text
        assert "v=spf1 mx a:mail.example.com ~all" in text
        assert "0 3 1 * * certbot renew --quiet && /opt/zimbra/bin/zmcontrol restart" in text

    def test_to_dict(self):
        """Test JSON form lists every next step."""
        config = ZimbraKitConfig(hostname="mail.example.com", domain="example.com")

        data = build_report(config, "203.0.113.10").to_dict()

        assert data["ip_address"] == "203.0.113.10"
        assert len(data["next_steps"]) == 5
