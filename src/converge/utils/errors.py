"""Custom exception classes for Converge."""

from typing import Iterable, Optional
from ..contracts.run_report import ErrorKind


class ConvergeError(Exception):
    """Base exception for all Converge errors."""
    pass


class ConfigError(ConvergeError):
    """Raised when configuration is invalid or missing."""
    pass


class DescriptorLoadError(ConvergeError):
    """Raised when a descriptor file cannot be loaded or is invalid."""
    pass


class GraphConstructionError(ConvergeError):
    """Raised when dependency graph construction fails."""
    pass


class ReportWriteError(ConvergeError):
    """Raised when a report or artifact cannot be written."""
    pass


class ValidationError(GraphConstructionError):
    """Descriptor set is invalid; raised before any adapter call is made."""

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR


class CycleDetectedError(ValidationError):
    """Raised when the dependency relation contains a cycle."""

    kind = ErrorKind.CYCLE_DETECTED

    def __init__(self, ids: Iterable[str]):
        self.ids = list(ids)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.ids)}")


class UnknownDependencyError(ValidationError):
    """Raised when a depends_on reference does not resolve within the set."""

    kind = ErrorKind.UNKNOWN_DEPENDENCY

    def __init__(self, dependency_id: str, dependent_id: Optional[str] = None):
        self.dependency_id = dependency_id
        self.dependent_id = dependent_id
        message = f"Unknown dependency: {dependency_id}"
        if dependent_id:
            message += f" (referenced by {dependent_id})"
        super().__init__(message)


class AdapterError(ConvergeError):
    """
    Failure reported by a provider adapter.

    Subclasses pin the ErrorKind the reconciler records for the node.
    """

    kind: ErrorKind = ErrorKind.PROVIDER_ERROR


class AdapterUnavailableError(AdapterError):
    """Provider cannot be reached."""

    kind = ErrorKind.ADAPTER_UNAVAILABLE


class PermissionDeniedError(AdapterError):
    """Provider rejected the call for authorization reasons."""

    kind = ErrorKind.PERMISSION_DENIED


class AdapterTimeoutError(AdapterError):
    """Adapter call did not complete within the configured timeout."""

    kind = ErrorKind.TIMEOUT


class ConflictError(AdapterError):
    """Resource is in a state the engine cannot safely act on."""

    kind = ErrorKind.CONFLICT


class ResourceAlreadyExistsError(ConflictError):
    """Create found the resource already present."""
    pass


class ResourceNotFoundError(AdapterError):
    """Delete found the resource already absent."""
    pass
