"""Error taxonomy shared by ZimbraKit services and the provisioning sequence."""

from collections.abc import Sequence


class ProvisionError(Exception):
    """Base exception for provisioning errors."""

    default_code = "PROVISION_FAILED"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        suggestion: str | None = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class PermissionDeniedError(ProvisionError):
    """Raised when the process is not running with root privileges."""

    default_code = "PERMISSION_DENIED"


class UnsupportedPlatformError(ProvisionError):
    """Raised when the host is not the supported distribution/version."""

    default_code = "UNSUPPORTED_PLATFORM"


class NetworkError(ProvisionError):
    """Raised when a download or certificate issuance fails."""

    default_code = "NETWORK_ERROR"


class ExternalCommandError(ProvisionError):
    """Raised when an invoked tool is missing or exits non-zero."""

    default_code = "COMMAND_FAILED"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        suggestion: str | None = None,
        argv: Sequence[str] | None = None,
        returncode: int | None = None,
    ):
        super().__init__(message, code=code, suggestion=suggestion)
        self.argv = list(argv) if argv else []
        self.returncode = returncode


class ConfigError(ProvisionError):
    """Raised when the configuration file cannot be used."""

    default_code = "CONFIG_INVALID"
