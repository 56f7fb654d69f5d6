"""ZimbraKit - Zimbra OSE provisioning CLI for Ubuntu 22.04."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("zimbrakit")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
