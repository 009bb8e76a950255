"""Diff desired against observed state and execute single node actions."""

import threading
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional
from ..contracts.run_report import ErrorKind, ReportAction
from ..descriptors.models import ObservedState, ResourceDescriptor
from ..providers.base import ProviderAdapter
from ..utils.errors import (
    AdapterError,
    AdapterTimeoutError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from ..utils.logging import get_logger

logger = get_logger("engine.reconciler")


class Action(str, Enum):
    """Reconciliation action for one node."""
    NO_OP = "NO_OP"
    CREATE = "CREATE"
    RECREATE = "RECREATE"
    DELETE = "DELETE"


class NodeOutcome(NamedTuple):
    """Result of one adapter step for a node."""
    action: ReportAction
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    intended: Optional[ReportAction] = None

    @property
    def failed(self) -> bool:
        return self.action == ReportAction.FAIL


def specs_match(desired: Any, observed: Any) -> bool:
    """
    Structural, one-directional spec comparison.

    Every key of a desired mapping must exist in the observed mapping with a
    matching value; keys only the provider reports are ignored. Sequences
    compare element-wise with the same rule; scalars compare by equality.
    """
    if isinstance(desired, dict):
        if not isinstance(observed, dict):
            return False
        return all(key in observed and specs_match(value, observed[key]) for key, value in desired.items())
    if isinstance(desired, (list, tuple)):
        if not isinstance(observed, (list, tuple)) or len(desired) != len(observed):
            return False
        return all(specs_match(d, o) for d, o in zip(desired, observed))
    return desired == observed


def diff(descriptor: ResourceDescriptor, observed: ObservedState, desired: bool = True) -> Action:
    """
    Decide the action that converges one node.

    Every kind is treated as immutable in place, so a spec change is always
    RECREATE.
    """
    if not desired:
        return Action.DELETE if observed.present else Action.NO_OP
    if not observed.present:
        return Action.CREATE
    if observed.spec is None:
        return Action.NO_OP if not descriptor.spec else Action.RECREATE
    if specs_match(descriptor.spec, observed.spec):
        return Action.NO_OP
    return Action.RECREATE


def call_with_timeout(func: Callable[..., Any], timeout: Optional[float], *args: Any) -> Any:
    """
    Run an adapter call, raising AdapterTimeoutError once timeout seconds pass.

    The call runs on a daemon thread that is abandoned (not killed) on
    timeout, so a call that never returns cannot hold up interpreter exit.
    Stopping the underlying work is left to the adapter.
    """
    if timeout is None:
        return func(*args)

    outcome: Dict[str, Any] = {}

    def target() -> None:
        try:
            outcome["result"] = func(*args)
        except Exception as e:
            outcome["error"] = e

    name = getattr(func, "__name__", "call")
    worker = threading.Thread(target=target, name=f"converge-{name}", daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        raise AdapterTimeoutError(f"{name} exceeded {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


def error_kind_for(error: Exception) -> ErrorKind:
    """Map an adapter exception to the report's ErrorKind."""
    if isinstance(error, AdapterError):
        return error.kind
    return ErrorKind.PROVIDER_ERROR


def describe(descriptor: ResourceDescriptor, adapter: ProviderAdapter, timeout: Optional[float] = None) -> ObservedState:
    """Describe one node through the adapter under the call timeout."""
    return call_with_timeout(adapter.describe, timeout, descriptor.kind, descriptor.id, descriptor.scope)


def _create(descriptor: ResourceDescriptor, adapter: ProviderAdapter, timeout: Optional[float]) -> NodeOutcome:
    try:
        call_with_timeout(adapter.create, timeout, descriptor)
    except ResourceAlreadyExistsError:
        logger.info(f"{descriptor} already exists, treating create as no-op")
        return NodeOutcome(ReportAction.NO_OP, message="already exists")
    except Exception as e:
        logger.warning(f"Create failed for {descriptor}: {e}")
        return NodeOutcome(ReportAction.FAIL, error_kind_for(e), str(e), intended=ReportAction.CREATE)
    logger.info(f"Created {descriptor}")
    return NodeOutcome(ReportAction.CREATE)


def _delete(descriptor: ResourceDescriptor, adapter: ProviderAdapter, timeout: Optional[float]) -> NodeOutcome:
    try:
        call_with_timeout(adapter.delete, timeout, descriptor.kind, descriptor.id, descriptor.scope)
    except ResourceNotFoundError:
        logger.info(f"{descriptor} already absent, treating delete as no-op")
        return NodeOutcome(ReportAction.NO_OP, message="already absent")
    except Exception as e:
        logger.warning(f"Delete failed for {descriptor}: {e}")
        return NodeOutcome(ReportAction.FAIL, error_kind_for(e), str(e), intended=ReportAction.DELETE)
    logger.info(f"Deleted {descriptor}")
    return NodeOutcome(ReportAction.DELETE)


def apply_action(
    descriptor: ResourceDescriptor,
    action: Action,
    adapter: ProviderAdapter,
    timeout: Optional[float] = None
) -> List[NodeOutcome]:
    """
    Execute one reconciliation action.

    One adapter call for CREATE and DELETE, delete then create for RECREATE,
    nothing for NO_OP. Adapter errors never propagate; they come back as FAIL
    outcomes carrying an ErrorKind.
    """
    if action == Action.NO_OP:
        return [NodeOutcome(ReportAction.NO_OP)]
    if action == Action.CREATE:
        return [_create(descriptor, adapter, timeout)]
    if action == Action.DELETE:
        return [_delete(descriptor, adapter, timeout)]

    deleted = _delete(descriptor, adapter, timeout)
    if deleted.failed:
        return [deleted]
    return [deleted, _create(descriptor, adapter, timeout)]


def planned_outcomes(action: Action) -> List[NodeOutcome]:
    """Outcomes a plan run reports for an action, mirroring apply_action."""
    if action == Action.CREATE:
        return [NodeOutcome(ReportAction.CREATE)]
    if action == Action.DELETE:
        return [NodeOutcome(ReportAction.DELETE)]
    if action == Action.RECREATE:
        return [NodeOutcome(ReportAction.DELETE), NodeOutcome(ReportAction.CREATE)]
    return [NodeOutcome(ReportAction.NO_OP)]
