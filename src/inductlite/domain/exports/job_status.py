"""ExportStatus state machine and the closed set of export kinds"""

from enum import Enum
from typing import Dict, List, Optional


class ExportType(str, Enum):
    """Export kinds the runner knows how to generate."""
    SIGN_IN_CSV = "SIGN_IN_CSV"
    INDUCTION_CSV = "INDUCTION_CSV"
    CONTRACTOR_CSV = "CONTRACTOR_CSV"


class ExportStatus(str, Enum):
    """Export job lifecycle

    State flow:
    QUEUED → RUNNING → SUCCEEDED or FAILED
    RUNNING → QUEUED when requeued (guardrail skip, backoff, stale recovery)
    """
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"  # terminal
    FAILED = "FAILED"        # terminal


TERMINAL_STATUSES = frozenset({ExportStatus.SUCCEEDED, ExportStatus.FAILED})

ALLOWED_TRANSITIONS: Dict[Optional[ExportStatus], List[ExportStatus]] = {
    None: [ExportStatus.QUEUED],
    ExportStatus.QUEUED: [ExportStatus.RUNNING],
    ExportStatus.RUNNING: [ExportStatus.SUCCEEDED, ExportStatus.QUEUED, ExportStatus.FAILED],
    ExportStatus.SUCCEEDED: [],
    ExportStatus.FAILED: [],
}


def can_transition(from_status: Optional[ExportStatus], to_status: ExportStatus) -> bool:
    """Validate if status transition is allowed

    Example:
        >>> can_transition(ExportStatus.QUEUED, ExportStatus.RUNNING)
        True
        >>> can_transition(ExportStatus.QUEUED, ExportStatus.SUCCEEDED)
        False
    """
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def source_statuses(to_status: ExportStatus) -> List[ExportStatus]:
    """Statuses a job may be in for an update to to_status to apply.

    Example:
        >>> source_statuses(ExportStatus.SUCCEEDED)
        [<ExportStatus.RUNNING: 'RUNNING'>]
    """
    return [status for status in ExportStatus if can_transition(status, to_status)]


def is_terminal(status: ExportStatus) -> bool:
    return status in TERMINAL_STATUSES
