"""Tests for installer bundle download and extraction."""

import io
import tarfile
from unittest.mock import MagicMock, patch

import pytest
import requests

from zimbrakit.config import ZimbraKitConfig
from zimbrakit.errors import ExternalCommandError, NetworkError
from zimbrakit.services.artifact_service import ArtifactService
from zimbrakit.services.installer_service import InstallerService

TOP_DIR = "zcs-9.0.0_OSE_UBUNTU22_20240101"


def make_bundle(top_dir: str = TOP_DIR) -> bytes:
    """Build a small gzipped tarball shaped like the Zimbra bundle."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        directory = tarfile.TarInfo(top_dir)
        directory.type = tarfile.DIRTYPE
        directory.mode = 0o755
        tar.addfile(directory)

        script = b"#!/bin/bash\necho installing\n"
        info = tarfile.TarInfo(f"{top_dir}/install.sh")
        info.size = len(script)
        info.mode = 0o755
        tar.addfile(info, io.BytesIO(script))
    return buffer.getvalue()


def fake_response(body: bytes) -> MagicMock:
    response = MagicMock()
    response.__enter__.return_value = response
    response.headers = {"content-length": str(len(body))}
    response.iter_content.return_value = [body[:100], body[100:]]
    return response


@pytest.fixture
def config(tmp_path):
    return ZimbraKitConfig(install_dir=tmp_path / "opt")


@pytest.fixture
def service(config):
    return ArtifactService(config)


class TestDownload:
    """Tests for ArtifactService.download."""

    def test_downloads_when_missing(self, service, config):
        """Test the bundle is streamed to the archive path."""
        body = make_bundle()
        with patch(
            "zimbrakit.services.artifact_service.requests.get",
            return_value=fake_response(body),
        ) as get:
            downloaded = service.download()

        assert downloaded is True
        assert config.archive_path.read_bytes() == body
        assert not config.archive_path.with_name(config.archive_path.name + ".part").exists()
        get.assert_called_once()
        assert get.call_args.args[0] == config.download_url
        assert get.call_args.kwargs["stream"] is True

    def test_skips_when_present(self, service, config):
        """Test an existing archive means no network call."""
        config.install_dir.mkdir(parents=True)
        config.archive_path.write_bytes(make_bundle())

        with patch("zimbrakit.services.artifact_service.requests.get") as get:
            downloaded = service.download()

        assert downloaded is False
        get.assert_not_called()

    def test_reports_progress(self, service):
        """Test bytes are reported to the progress bar."""
        body = make_bundle()
        progress = MagicMock()
        with patch(
            "zimbrakit.services.artifact_service.requests.get",
            return_value=fake_response(body),
        ):
            service.download(progress)

        progress.add_task.assert_called_once()
        advanced = sum(c.args[1] for c in progress.advance.call_args_list)
        assert advanced == len(body)

    def test_http_error(self, service, config):
        """Test an HTTP error becomes a NetworkError and leaves nothing behind."""
        response = fake_response(b"")
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        with patch("zimbrakit.services.artifact_service.requests.get", return_value=response):
            with pytest.raises(NetworkError) as exc:
                service.download()

        assert exc.value.code == "DOWNLOAD_FAILED"
        assert not config.archive_path.exists()

    def test_connection_error(self, service, config):
        """Test a connection failure becomes a NetworkError."""
        with patch(
            "zimbrakit.services.artifact_service.requests.get",
            side_effect=requests.ConnectionError("Name or service not known"),
        ):
            with pytest.raises(NetworkError):
                service.download()

        assert not config.archive_path.exists()


class TestExtract:
    """Tests for extraction and top-level directory lookup."""

    def test_acquire_existing_archive_still_extracts(self, service, config):
        """Test a skipped download is followed by extraction."""
        config.install_dir.mkdir(parents=True)
        config.archive_path.write_bytes(make_bundle())

        with patch("zimbrakit.services.artifact_service.requests.get") as get:
            result = service.acquire()

        get.assert_not_called()
        assert result.downloaded is False
        assert result.extracted_dir == config.install_dir / TOP_DIR
        assert (config.install_dir / TOP_DIR / "install.sh").is_file()

    def test_top_level_dir_dot_prefix(self, service, config):
        """Test a leading './' in member names is ignored."""
        config.install_dir.mkdir(parents=True)
        config.archive_path.write_bytes(make_bundle(f"./{TOP_DIR}"))

        assert service.top_level_dir() == TOP_DIR

    def test_corrupt_archive(self, service, config):
        """Test a truncated download fails extraction instead of being re-fetched."""
        config.install_dir.mkdir(parents=True)
        config.archive_path.write_bytes(make_bundle()[:50])

        with patch("zimbrakit.services.artifact_service.requests.get") as get:
            with pytest.raises(ExternalCommandError) as exc:
                service.acquire()

        get.assert_not_called()
        assert exc.value.code == "EXTRACT_FAILED"

    def test_empty_archive(self, service, config):
        """Test an archive with no members is rejected."""
        config.install_dir.mkdir(parents=True)
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz"):
            pass
        config.archive_path.write_bytes(buffer.getvalue())

        with pytest.raises(ExternalCommandError) as exc:
            service.top_level_dir()

        assert exc.value.code == "EMPTY_ARCHIVE"


class TestInstallerService:
    """Tests for the interactive installer hand-off."""

    def test_runs_install_script(self, service, config):
        """Test install.sh runs from the extracted directory with the terminal attached."""
        config.install_dir.mkdir(parents=True)
        config.archive_path.write_bytes(make_bundle())
        service.extract()

        with patch("zimbrakit.services.installer_service.run_command") as run:
            workdir = InstallerService(config, service).run()

        assert workdir == config.install_dir / TOP_DIR
        run.assert_called_once_with(["./install.sh"], cwd=workdir, capture=False, stream=None)

    def test_missing_script(self, service, config):
        """Test a bundle without install.sh is an error."""
        config.install_dir.mkdir(parents=True)
        config.archive_path.write_bytes(make_bundle())

        with patch("zimbrakit.services.installer_service.run_command") as run:
            with pytest.raises(ExternalCommandError) as exc:
                InstallerService(config, service).run()

        run.assert_not_called()
        assert exc.value.code == "INSTALLER_NOT_FOUND"
