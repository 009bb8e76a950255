"""Reconciliation engine: diff, single-node actions and the plan/apply driver."""

from .reconciler import Action, NodeOutcome, diff, apply_action, specs_match
from .runner import RunOptions, run, plan, apply, destroy

__all__ = [
    "Action",
    "NodeOutcome",
    "diff",
    "apply_action",
    "specs_match",
    "RunOptions",
    "run",
    "plan",
    "apply",
    "destroy",
]
