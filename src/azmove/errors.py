"""Error taxonomy for zone migrations.

Every fatal failure raised during a migration derives from ZoneMigrationError,
so the CLI can map it to an exit code and recovery guidance in one place.

Categories:
- ValidationError: missing or malformed parameter, before any remote call
- PreflightError: a read-only query returned empty or unexpected data
- RemoteOperationError: an Azure CLI call returned a non-success result
- OperationTimeoutError: a bounded wait ran past its deadline
- ConfigError: configuration file could not be read or written

Cleanup failures are not exceptions; see azmove.models.CleanupWarning.
"""

from typing import Any


class ZoneMigrationError(Exception):
    """Base exception for azmove errors."""

    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        # Filled in by the orchestrator when the error escapes a stage
        self.phase: Any = None
        self.original_vm_deleted = False


class ValidationError(ZoneMigrationError):
    """Raised when migration parameters are missing or malformed."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class PreflightError(ZoneMigrationError):
    """Raised when a read-only query returns empty or unexpected data."""

    pass


class RemoteOperationError(ZoneMigrationError):
    """Raised when an Azure control-plane operation fails."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr
        self.returncode = returncode

    @classmethod
    def wrap(cls, message: str, error: "RemoteOperationError") -> "RemoteOperationError":
        """Copy a lower-level failure under a stage-specific message."""
        detail = error.stderr or error.message
        return cls(
            f"{message}: {detail}",
            command=error.command,
            stderr=error.stderr,
            returncode=error.returncode,
        )

    @property
    def not_found(self) -> bool:
        """True when Azure reported the target resource as missing."""
        return "ResourceNotFound" in self.stderr or "NotFound" in self.stderr


class MissingJobIdError(RemoteOperationError):
    """Raised when a backup submission response carries no job identifier."""

    pass


class OperationTimeoutError(ZoneMigrationError):
    """Raised when an operation does not complete within its deadline."""

    def __init__(self, message: str, waited_seconds: float = 0.0) -> None:
        super().__init__(message)
        self.waited_seconds = waited_seconds


class ConfigError(ZoneMigrationError):
    """Raised when configuration operations fail."""

    pass


__all__ = [
    "ConfigError",
    "MissingJobIdError",
    "OperationTimeoutError",
    "PreflightError",
    "RemoteOperationError",
    "ValidationError",
    "ZoneMigrationError",
]
