"""In-memory provider adapter with optional JSON state file."""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from ..descriptors.models import ObservedState, ResourceDescriptor, ResourceKind, Scope
from ..utils.errors import (
    AdapterError,
    ConfigError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from ..utils.logging import get_logger
from .base import ProviderAdapter

logger = get_logger("providers.memory")

Key = Tuple[str, str, str]


def _key(kind: ResourceKind, resource_id: str, scope: Scope) -> Key:
    return (ResourceKind(kind).value, Scope(scope).value, resource_id)


class InMemoryProvider(ProviderAdapter):
    """
    Dict-backed provider.

    Used as the fake adapter in tests and for local dry runs of descriptor
    files. When ``state_file`` is given, state is loaded on construction and
    written back (temp file + rename) after every mutation.

    ``failures`` maps ``(operation, resource_id)`` to an AdapterError subclass
    (or instance) raised instead of performing the call, e.g.
    ``{("create", "cert"): PermissionDeniedError}``.
    """

    name = "memory"

    def __init__(
        self,
        resources: Optional[Dict[Key, Dict[str, Any]]] = None,
        state_file: Optional[str] = None,
        failures: Optional[Dict[Tuple[str, str], Any]] = None
    ):
        self.resources: Dict[Key, Dict[str, Any]] = dict(resources or {})
        self.state_file = Path(state_file) if state_file else None
        self.failures: Dict[Tuple[str, str], Any] = dict(failures or {})
        self.calls: List[Tuple[str, str]] = []
        if self.state_file is not None:
            self.load()

    def describe(self, kind: ResourceKind, resource_id: str, scope: Scope) -> ObservedState:
        self._record("describe", resource_id)
        spec = self.resources.get(_key(kind, resource_id, scope))
        if spec is None:
            return ObservedState.absent()
        return ObservedState.present_with(copy.deepcopy(spec))

    def create(self, descriptor: ResourceDescriptor) -> None:
        self._record("create", descriptor.id)
        key = _key(descriptor.kind, descriptor.id, descriptor.scope)
        if key in self.resources:
            raise ResourceAlreadyExistsError(f"{descriptor} already exists")
        self.resources[key] = copy.deepcopy(descriptor.spec)
        logger.debug(f"Created {descriptor}")
        self.save()

    def delete(self, kind: ResourceKind, resource_id: str, scope: Scope) -> None:
        self._record("delete", resource_id)
        key = _key(kind, resource_id, scope)
        if key not in self.resources:
            raise ResourceNotFoundError(f"{ResourceKind(kind).value}:{resource_id} not found")
        del self.resources[key]
        logger.debug(f"Deleted {ResourceKind(kind).value}:{resource_id}")
        self.save()

    def put(self, descriptor: ResourceDescriptor, spec: Optional[Dict[str, Any]] = None) -> None:
        """Seed a resource directly, bypassing the call log (out-of-band change); persisted like any mutation."""
        key = _key(descriptor.kind, descriptor.id, descriptor.scope)
        self.resources[key] = copy.deepcopy(descriptor.spec if spec is None else spec)
        self.save()

    def exists(self, descriptor: ResourceDescriptor) -> bool:
        return _key(descriptor.kind, descriptor.id, descriptor.scope) in self.resources

    def mutating_calls(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("create", "delete")]

    def _record(self, operation: str, resource_id: str) -> None:
        self.calls.append((operation, resource_id))
        failure = self.failures.get((operation, resource_id))
        if failure is None:
            return
        if isinstance(failure, type) and issubclass(failure, BaseException):
            raise failure(f"Injected {operation} failure for {resource_id}")
        raise failure

    def load(self) -> None:
        """Load state from the state file if it exists."""
        if self.state_file is None or not self.state_file.exists():
            return
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read provider state file {self.state_file}: {e}")

        self.resources = {}
        for item in data.get("resources", []):
            key = _key(item["kind"], item["id"], item["scope"])
            self.resources[key] = item.get("spec") or {}
        logger.debug(f"Loaded {len(self.resources)} resources from {self.state_file}")

    def save(self) -> None:
        """Persist state atomically when a state file is configured."""
        if self.state_file is None:
            return
        items = [
            {"kind": kind, "scope": scope, "id": resource_id, "spec": spec}
            for (kind, scope, resource_id), spec in sorted(self.resources.items())
        ]
        next_file = self.state_file.with_name(f"{self.state_file.name}.next")
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(next_file, 'w', encoding='utf-8') as f:
                json.dump({"resources": items}, f, indent=2, sort_keys=True)
            os.replace(next_file, self.state_file)
        except OSError as e:
            raise AdapterError(f"Could not write provider state file {self.state_file}: {e}")
