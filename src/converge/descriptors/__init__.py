"""Resource descriptors: declarative desired state plus dependency edges."""

from .models import ResourceDescriptor, ResourceKind, Scope, ObservedState

__all__ = [
    "ResourceDescriptor",
    "ResourceKind",
    "Scope",
    "ObservedState",
]
