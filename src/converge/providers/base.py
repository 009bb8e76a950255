"""Abstract base class for provider adapters."""

from abc import ABC, abstractmethod
from ..descriptors.models import ObservedState, ResourceDescriptor, ResourceKind, Scope


class ProviderAdapter(ABC):
    """
    Abstract interface for provider adapters.

    The engine only ever calls these three operations. Failures are raised as
    AdapterError subclasses (see utils.errors) so the reconciler can record the
    matching ErrorKind:
    - AdapterUnavailableError: provider cannot be reached
    - PermissionDeniedError: call rejected for authorization reasons
    - ConflictError: resource is in a state the engine cannot act on
    - ResourceAlreadyExistsError: create found the resource present
    - ResourceNotFoundError: delete found the resource absent

    Each call may block for a long time; the engine enforces its own timeout.
    """

    name: str = "provider"

    @abstractmethod
    def describe(self, kind: ResourceKind, resource_id: str, scope: Scope) -> ObservedState:
        """
        Query the current state of one resource.

        Returns:
            ObservedState.absent() or ObservedState.present_with(spec)
        """
        pass

    @abstractmethod
    def create(self, descriptor: ResourceDescriptor) -> None:
        """Create the resource described by descriptor."""
        pass

    @abstractmethod
    def delete(self, kind: ResourceKind, resource_id: str, scope: Scope) -> None:
        """Delete one resource."""
        pass
