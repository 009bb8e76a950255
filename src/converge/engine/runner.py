"""Plan/apply engine: order, diff and (optionally) converge a descriptor set."""

import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set
from ..contracts.run_report import ErrorKind, ReportAction, ReportEntry, RunMode, RunReport
from ..descriptors.models import ResourceDescriptor
from ..graph.dependency_graph import DependencyGraph
from ..providers.base import ProviderAdapter
from ..utils.errors import GraphConstructionError
from ..utils.logging import get_logger
from .reconciler import Action, NodeOutcome, apply_action, describe, diff, error_kind_for, planned_outcomes

logger = get_logger("engine.runner")


@dataclass
class RunOptions:
    """Per-run knobs supplied by the caller."""
    call_timeout: Optional[float] = None
    cancel_event: Optional[threading.Event] = None

    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass
class _RunState:
    report: RunReport
    blocked: Set[str] = field(default_factory=set)
    protected: Set[str] = field(default_factory=set)
    cancelled: bool = False


def _validate(
    desired: List[ResourceDescriptor],
    removals: List[ResourceDescriptor]
) -> tuple:
    """
    Build both graphs before any adapter call.

    Desired descriptors must resolve within the desired set; removal
    candidates may also point at desired descriptors.
    """
    desired_graph = DependencyGraph()
    desired_graph.build_from_descriptors(desired)

    removal_graph = DependencyGraph()
    removal_graph.build_from_descriptors(removals, resolvable=desired)
    return desired_graph, removal_graph


def _removal_candidates(
    desired: List[ResourceDescriptor],
    managed: Iterable[ResourceDescriptor]
) -> List[ResourceDescriptor]:
    desired_ids = {d.id for d in desired}
    removals = []
    seen: Set[str] = set()
    for descriptor in managed:
        if descriptor.id in desired_ids:
            continue
        if descriptor.id in seen:
            raise GraphConstructionError(f"Duplicate managed descriptor id: {descriptor.id}")
        seen.add(descriptor.id)
        removals.append(descriptor)
    # Edges to ids that are neither desired nor managed point at resources already gone.
    known = desired_ids | seen
    return [
        d.model_copy(update={"depends_on": frozenset(dep for dep in d.depends_on if dep in known)})
        for d in removals
    ]


def _record(state: _RunState, descriptor: ResourceDescriptor, outcome: NodeOutcome) -> None:
    state.report.add(ReportEntry(
        id=descriptor.id,
        kind=descriptor.kind.value,
        action=outcome.action,
        error=outcome.error,
        message=outcome.message,
        intended=outcome.intended,
    ))


def _skip(state: _RunState, descriptor: ResourceDescriptor, error: ErrorKind, message: str) -> None:
    _record(state, descriptor, NodeOutcome(ReportAction.SKIP, error, message))


def _protect_desired_dependencies(state: _RunState, descriptor: ResourceDescriptor, graph: DependencyGraph) -> None:
    # Removal candidates left in place keep their desired dependencies from being recreated.
    state.protected.update(dep for dep in descriptor.depends_on if graph.get_descriptor(dep) is None)


def _process(
    state: _RunState,
    descriptor: ResourceDescriptor,
    adapter: ProviderAdapter,
    mode: RunMode,
    options: RunOptions,
    desired: bool,
    graph: DependencyGraph
) -> None:
    if state.cancelled or options.cancelled():
        state.cancelled = True
        _skip(state, descriptor, ErrorKind.CANCELLED, "run cancelled before this node started")
        return

    if descriptor.id in state.blocked:
        _skip(state, descriptor, ErrorKind.DEPENDENCY_FAILED, "a dependency failed")
        logger.warning(f"Skipping {descriptor}: dependency failed")
        if not desired:
            _protect_desired_dependencies(state, descriptor, graph)
        return

    try:
        observed = describe(descriptor, adapter, options.call_timeout)
    except Exception as e:
        logger.warning(f"Describe failed for {descriptor}: {e}")
        outcomes = [NodeOutcome(ReportAction.FAIL, error_kind_for(e), str(e))]
    else:
        action = diff(descriptor, observed, desired=desired)
        logger.debug(f"{descriptor}: {action.value}")
        if action == Action.RECREATE and descriptor.id in state.protected:
            logger.warning(f"Not recreating {descriptor}: a resource that depends on it could not be removed")
            outcomes = [NodeOutcome(
                ReportAction.SKIP,
                ErrorKind.DEPENDENCY_FAILED,
                "still referenced by a resource that could not be removed",
                intended=ReportAction.DELETE,
            )]
        elif mode == RunMode.PLAN or action == Action.NO_OP:
            outcomes = planned_outcomes(action)
        else:
            outcomes = apply_action(descriptor, action, adapter, options.call_timeout)

    for outcome in outcomes:
        _record(state, descriptor, outcome)

    if any(outcome.failed for outcome in outcomes):
        # Creation blocks dependents; teardown blocks the dependencies still referenced.
        if desired:
            state.blocked.update(graph.dependents_of(descriptor.id))
        else:
            state.blocked.update(graph.dependencies_of(descriptor.id))
            _protect_desired_dependencies(state, descriptor, graph)


def run(
    descriptors: Iterable[ResourceDescriptor],
    adapter: ProviderAdapter,
    mode: RunMode = RunMode.PLAN,
    managed: Optional[Iterable[ResourceDescriptor]] = None,
    options: Optional[RunOptions] = None
) -> RunReport:
    """
    Reconcile a desired descriptor set against the adapter's observed state.

    Args:
        descriptors: Desired descriptors
        adapter: Provider adapter used for describe/create/delete
        mode: PLAN issues only describe calls; APPLY also mutates
        managed: Descriptors previously managed; those not desired are deleted
        options: Call timeout and cancellation event

    Returns:
        Complete RunReport; per-node failures are recorded, never raised

    Raises:
        CycleDetectedError: If the dependency relation is cyclic
        UnknownDependencyError: If a dependency does not resolve
    """
    mode = RunMode(mode)
    options = options or RunOptions()
    desired = list(descriptors)
    removals = _removal_candidates(desired, managed or [])

    desired_graph, removal_graph = _validate(desired, removals)

    state = _RunState(report=RunReport(mode=mode))
    logger.info(
        f"Starting {mode.value}: {len(desired)} desired, {len(removals)} removal candidates "
        f"(provider: {getattr(adapter, 'name', type(adapter).__name__)})"
    )

    for descriptor in removal_graph.destruction_order():
        _process(state, descriptor, adapter, mode, options, False, removal_graph)

    state.blocked.clear()
    for descriptor in desired_graph.creation_order():
        _process(state, descriptor, adapter, mode, options, True, desired_graph)

    counts = state.report.counts()
    logger.info(
        f"{mode.value.capitalize()} complete: "
        + ", ".join(f"{action.lower()}={count}" for action, count in counts.items())
    )
    return state.report


def plan(descriptors, adapter, managed=None, options=None) -> RunReport:
    """Report the actions an apply would take; issues describe calls only."""
    return run(descriptors, adapter, RunMode.PLAN, managed=managed, options=options)


def apply(descriptors, adapter, managed=None, options=None) -> RunReport:
    """Converge the adapter's state toward the desired descriptors."""
    return run(descriptors, adapter, RunMode.APPLY, managed=managed, options=options)


def destroy(descriptors, adapter, mode=RunMode.APPLY, options=None) -> RunReport:
    """Tear down every given descriptor, dependents first."""
    return run([], adapter, mode, managed=descriptors, options=options)
