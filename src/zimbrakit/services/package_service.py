"""APT package management for ZimbraKit."""

import logging
from collections.abc import Sequence
from typing import TextIO

from zimbrakit.config import ZimbraKitConfig, get_config
from zimbrakit.services.command import run_command

logger = logging.getLogger(__name__)

NONINTERACTIVE_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageService:
    """Wraps apt. Output goes straight to the terminal so long runs stay visible."""

    def __init__(
        self,
        config: ZimbraKitConfig | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.config = config or get_config()
        self.stream = stream
        self.apt_bin = "apt"

    def update(self) -> None:
        """Refresh package indexes."""
        run_command([self.apt_bin, "update"], capture=False, stream=self.stream)

    def upgrade(self) -> None:
        """Upgrade installed packages."""
        run_command([self.apt_bin, "upgrade", "-y"], capture=False, stream=self.stream)

    def update_and_upgrade(self) -> None:
        logger.info("Updating system packages")
        self.update()
        self.upgrade()

    def install(self, packages: Sequence[str] | None = None) -> list[str]:
        """Install packages non-interactively.

        Args:
            packages: Package names; defaults to the configured dependency list

        Returns:
            The package names passed to apt
        """
        names = list(packages if packages is not None else self.config.packages)
        if not names:
            return names

        logger.info(f"Installing packages: {' '.join(names)}")
        run_command(
            [self.apt_bin, "install", "-y", *names],
            capture=False,
            env=NONINTERACTIVE_ENV,
            stream=self.stream,
        )
        return names
