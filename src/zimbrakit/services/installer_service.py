"""Hand-off to the interactive Zimbra installer."""

import logging
from pathlib import Path
from typing import TextIO

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.errors import ExternalCommandError
from zimbrakit.services.artifact_service import ArtifactService
from zimbrakit.services.command import run_command

logger = logging.getLogger(__name__)

INSTALLER_SCRIPT = "install.sh"


class InstallerService:
    """Runs the bundle's install.sh with the operator's terminal attached.

    The installer prompts for answers and has no timeout; whatever it does
    internally is outside ZimbraKit's control.
    """

    def __init__(
        self,
        config: ZimbraKitConfig | None = None,
        artifacts: ArtifactService | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.config = config or get_config()
        self.artifacts = artifacts or ArtifactService(self.config)
        self.stream = stream

    def installer_dir(self) -> Path:
        return self.config.install_dir / self.artifacts.top_level_dir()

    def run(self) -> Path:
        """Launch the interactive installer and wait for it to exit.

        Returns:
            Directory the installer ran from

        Raises:
            ExternalCommandError: If install.sh is missing or exits non-zero
        """
        workdir = self.installer_dir()
        script = workdir / INSTALLER_SCRIPT
        if not script.is_file():
            raise ExternalCommandError(
                f"Installer not found at {script}",
                code="INSTALLER_NOT_FOUND",
                suggestion=f"Delete {self.config.archive_path} and re-run to fetch a fresh bundle",
            )

        logger.info(f"Launching interactive installer in {workdir}")
        run_command([f"./{INSTALLER_SCRIPT}"], cwd=workdir, capture=False, stream=self.stream)
        logger.info("Zimbra installer finished (interactive phase)")
        return workdir
