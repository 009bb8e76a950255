"""Pydantic model for the run report (versioned, ordered, produced fresh per run)."""

from enum import Enum
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

REPORT_VERSION = "1.0.0"


class ReportAction(str, Enum):
    """Per-node outcome recorded in the run report."""
    CREATE = "CREATE"
    DELETE = "DELETE"
    NO_OP = "NO_OP"
    SKIP = "SKIP"
    FAIL = "FAIL"


class ErrorKind(str, Enum):
    """Failure taxonomy for report entries and validation errors."""
    CYCLE_DETECTED = "CYCLE_DETECTED"
    UNKNOWN_DEPENDENCY = "UNKNOWN_DEPENDENCY"
    ADAPTER_UNAVAILABLE = "ADAPTER_UNAVAILABLE"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    TIMEOUT = "TIMEOUT"
    CONFLICT = "CONFLICT"
    DEPENDENCY_FAILED = "DEPENDENCY_FAILED"
    CANCELLED = "CANCELLED"
    PROVIDER_ERROR = "PROVIDER_ERROR"


class RunMode(str, Enum):
    """Plan only describes; apply also mutates."""
    PLAN = "plan"
    APPLY = "apply"


class ReportEntry(BaseModel):
    """One node outcome, in the order it was processed."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Resource descriptor id")
    kind: str = Field(..., description="Resource kind tag")
    action: ReportAction = Field(..., description="Outcome for this node")
    error: Optional[ErrorKind] = Field(default=None, description="Error kind for FAIL and SKIP entries")
    message: Optional[str] = Field(default=None, description="Human-readable detail")
    intended: Optional[ReportAction] = Field(default=None, description="Action the node was about to take when it failed or was skipped")


class RunReport(BaseModel):
    """Ordered outcome of one plan or apply invocation."""
    version: str = Field(default=REPORT_VERSION, description="Report contract version")
    mode: RunMode = Field(..., description="Mode the run was invoked in")
    entries: List[ReportEntry] = Field(default_factory=list, description="Per-node outcomes in processing order")

    def add(self, entry: ReportEntry) -> None:
        """Append an entry (the report is append-only during a run)."""
        self.entries.append(entry)

    def actions(self) -> List[Tuple[ReportAction, str]]:
        """Return (action, id) pairs in report order."""
        return [(entry.action, entry.id) for entry in self.entries]

    def changes(self) -> List[Tuple[ReportAction, str]]:
        """Return only CREATE/DELETE pairs in report order."""
        return [
            (entry.action, entry.id) for entry in self.entries
            if entry.action in (ReportAction.CREATE, ReportAction.DELETE)
        ]

    def entries_for(self, resource_id: str) -> List[ReportEntry]:
        """Return every entry recorded for a resource id."""
        return [entry for entry in self.entries if entry.id == resource_id]

    @property
    def failed(self) -> List[ReportEntry]:
        return [entry for entry in self.entries if entry.action == ReportAction.FAIL]

    @property
    def skipped(self) -> List[ReportEntry]:
        return [entry for entry in self.entries if entry.action == ReportAction.SKIP]

    @property
    def succeeded(self) -> bool:
        """True when no node failed or was skipped."""
        return not self.failed and not self.skipped

    def counts(self) -> Dict[str, int]:
        """Count entries per action, every action present."""
        counts = {action.value: 0 for action in ReportAction}
        for entry in self.entries:
            counts[entry.action.value] += 1
        return counts

    def is_noop(self) -> bool:
        """True when every entry is NO_OP."""
        return all(entry.action == ReportAction.NO_OP for entry in self.entries)
