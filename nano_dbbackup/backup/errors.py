"""Error taxonomy for the backup pipeline."""

from typing import Optional

TIMEOUT_USER_MESSAGE = (
    "The database backup operation timed out. "
    "This may be due to the database size or server load."
)
TIMEOUT_DETAILS = (
    "Consider breaking up your backup into smaller chunks or running during off-peak hours."
)


class BackupError(Exception):
    """Base exception for backup pipeline failures.

    Args:
        message: Human readable error message
        original_error: Low-level error text kept for diagnostics
    """

    retryable: bool = False

    def __init__(self, message: str, original_error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    @property
    def user_message(self) -> str:
        return self.message

    @property
    def details(self) -> str:
        return ""


class ConnectionFailedError(BackupError):
    """Connection probe failed; raised before any dump attempt."""


class SizeEstimationError(BackupError):
    """Size query failed. Absorbed by the estimator, never surfaced."""


class DumpError(BackupError):
    """pg_dump did not produce a usable artifact."""

    def __init__(
        self,
        message: str,
        original_error: Optional[str] = None,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message, original_error)
        self.exit_code = exit_code
        self.stderr = stderr


class ToolNotFoundError(DumpError):
    pass


class DumpRetryableError(DumpError):
    retryable = True


class DumpFatalError(DumpError):
    pass


class EmptyArtifactError(DumpError):
    pass


class UploadError(BackupError):
    """Storage backend rejected or failed the upload."""


class BackupTimeoutError(BackupError):
    """A stage exceeded the computed timeout budget."""

    @property
    def user_message(self) -> str:
        return TIMEOUT_USER_MESSAGE

    @property
    def details(self) -> str:
        return TIMEOUT_DETAILS
