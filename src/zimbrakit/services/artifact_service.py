"""Download and extraction of the Zimbra OSE installer bundle."""

import logging
import tarfile
import zlib
from dataclasses import dataclass
from pathlib import Path

import requests
from rich.progress import Progress

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.errors import ExternalCommandError, NetworkError, ProvisionError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

# A truncated gzip stream surfaces as EOFError or zlib.error, not TarError
ARCHIVE_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


@dataclass
class ArtifactResult:
    """Result of the download step."""

    archive_path: Path
    downloaded: bool
    extracted_dir: Path
    size_bytes: int

    def to_dict(self) -> dict[str, str | int | bool]:
        return {
            "archive": str(self.archive_path),
            "downloaded": self.downloaded,
            "extracted_dir": str(self.extracted_dir),
            "size_bytes": self.size_bytes,
        }


class ArtifactService:
    """Fetches the versioned installer tarball into the install directory."""

    def __init__(self, config: ZimbraKitConfig | None = None) -> None:
        self.config = config or get_config()

    def download(self, progress: Progress | None = None) -> bool:
        """Download the bundle unless the archive is already on disk.

        An existing archive is trusted as-is; a corrupt one has to be removed
        by hand before it is fetched again.

        Args:
            progress: Optional rich Progress to report bytes received

        Returns:
            True if a download happened, False if it was skipped

        Raises:
            NetworkError: If the HTTP request fails or returns an error status
        """
        archive = self.config.archive_path
        if archive.exists():
            logger.warning(f"{archive} already exists, skipping download")
            return False

        url = self.config.download_url
        partial = archive.with_name(archive.name + ".part")
        archive.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Downloading {url} to {archive}")

        try:
            with requests.get(
                url,
                stream=True,
                allow_redirects=True,
                timeout=self.config.download_timeout,
            ) as response:
                response.raise_for_status()
                total = int(response.headers.get("content-length", 0)) or None
                task = None
                if progress is not None:
                    task = progress.add_task(f"Downloading {archive.name}", total=total)

                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        if task is not None:
                            progress.advance(task, len(chunk))

        except requests.RequestException as e:
            partial.unlink(missing_ok=True)
            raise NetworkError(
                f"Download of {url} failed: {e}",
                code="DOWNLOAD_FAILED",
                suggestion="Check outbound HTTPS access and the configured download URL",
            )
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise ProvisionError(
                f"Cannot write {partial}: {e}",
                code="DOWNLOAD_WRITE_FAILED",
                suggestion=f"Check free space and permissions in {archive.parent}",
            )

        partial.rename(archive)
        logger.info(f"Downloaded {archive.stat().st_size} bytes")
        return True

    def top_level_dir(self) -> str:
        """Name of the directory the archive unpacks into.

        Taken from the first member's path, up to the first '/'.

        Raises:
            ExternalCommandError: If the archive is unreadable or empty
        """
        archive = self.config.archive_path
        try:
            with tarfile.open(archive, "r:*") as tar:
                first = tar.next()
        except ARCHIVE_ERRORS as e:
            raise ExternalCommandError(
                f"Cannot read archive {archive}: {e}",
                code="EXTRACT_FAILED",
                suggestion=f"Delete {archive} and run the install again to re-download it",
            )

        if first is None:
            raise ExternalCommandError(
                f"Archive {archive} is empty",
                code="EMPTY_ARCHIVE",
                suggestion=f"Delete {archive} and run the install again to re-download it",
            )
        return first.name.removeprefix("./").split("/", 1)[0]

    def extract(self) -> Path:
        """Extract the archive into the install directory.

        Always extracts, overwriting files from a previous run.

        Returns:
            Path to the extracted top-level directory

        Raises:
            ExternalCommandError: If extraction fails
        """
        archive = self.config.archive_path
        install_dir = self.config.install_dir
        logger.info(f"Extracting {archive} into {install_dir}")

        try:
            with tarfile.open(archive, "r:gz") as tar:
                # Same semantics as `tar xfz`: keep permissions and symlinks
                tar.extractall(path=install_dir, filter="tar")
        except ARCHIVE_ERRORS as e:
            raise ExternalCommandError(
                f"Extraction of {archive} failed: {e}",
                code="EXTRACT_FAILED",
                suggestion=f"Delete {archive} and run the install again to re-download it",
            )

        return install_dir / self.top_level_dir()

    def acquire(self, progress: Progress | None = None) -> ArtifactResult:
        """Download (or reuse) the bundle, then extract it."""
        downloaded = self.download(progress)
        extracted_dir = self.extract()
        return ArtifactResult(
            archive_path=self.config.archive_path,
            downloaded=downloaded,
            extracted_dir=extracted_dir,
            size_bytes=self.config.archive_path.stat().st_size,
        )
