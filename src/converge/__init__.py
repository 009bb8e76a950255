"""Converge - Idempotent, declarative infrastructure reconciliation engine."""

from .contracts.run_report import RunReport, ReportAction, ErrorKind, RunMode
from .descriptors.models import ResourceDescriptor, ResourceKind, Scope, ObservedState
from .graph.dependency_graph import Direction, order
from .engine.runner import RunOptions, run, plan, apply, destroy
from .providers.base import ProviderAdapter
from .utils.logging import setup_logging, get_logger
from .utils.errors import ConvergeError

__version__ = "0.1.0"

__all__ = [
    "plan",
    "apply",
    "destroy",
    "run",
    "order",
    "Direction",
    "RunOptions",
    "RunReport",
    "RunMode",
    "ReportAction",
    "ErrorKind",
    "ResourceDescriptor",
    "ResourceKind",
    "Scope",
    "ObservedState",
    "ProviderAdapter",
    "ConvergeError",
]

setup_logging()
logger = get_logger("converge")
