"""Exceptions related to apm."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from apm.workflow.upgrade import UpgradeReport

__all__ = [
    "ApmException",
    "ValidationError",
    "NotFoundError",
    "AlreadyExistsError",
    "AmbiguousNameError",
    "StorageError",
    "SyncError",
    "InvalidDefinitionError",
    "InstallError",
    "CommandException",
    "AdminError",
    "NotifierUnavailable",
    "UpgradeError",
]


class ApmException(Exception):
    """Generic base exception used for this library."""


class ValidationError(ApmException):
    """Raised when an alias or plugin name is not formatted as expected."""


class NotFoundError(ApmException):
    """Raised when a repository, plugin or record does not exist."""


class AlreadyExistsError(ApmException):
    """Raised when registering a repository alias that is already tracked."""


class AmbiguousNameError(ApmException):
    """Raised when a bare plugin name is provided by more than one repository."""

    def __init__(self, name: str, candidates: list[str]) -> None:
        super().__init__(
            f"More than one match found for {name}. Please specify the fully "
            f"qualified name. Matches: {', '.join(candidates)}"
        )
        self.name = name
        self.candidates = candidates


class StorageError(ApmException):
    """Raised when the registry can't be read, written or decoded."""


class SyncError(ApmException):
    """Raised when a plugin repository could not be synchronized."""

    def __init__(self, message: str, failures: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or {}


class InvalidDefinitionError(SyncError):
    """Raised when a definition file in a plugin repository is malformed."""


class InstallError(ApmException):
    """Raised when a plugin artifact could not be materialized or removed."""


class CommandException(InstallError):
    """Raised when there is a failure running an install script."""


class AdminError(ApmException):
    """Raised when the admin API of the node returned an error."""


class NotifierUnavailable(AdminError):
    """Raised when the node is offline and can't be notified."""


class UpgradeError(ApmException):
    """Raised when one or more plugins failed to upgrade."""

    def __init__(self, report: "UpgradeReport") -> None:
        failed = ", ".join(f"{name} ({err})" for name, err in report.failed.items())
        super().__init__(f"Failed to upgrade: {failed}")
        self.report = report
