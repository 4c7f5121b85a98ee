from enum import Enum


class ActionType(str, Enum):
    """Outreach action performed by the external executor for a step."""
    EMAIL = 'EMAIL'
    CALL = 'CALL'
    TASK = 'TASK'
    WAIT = 'WAIT'


class DelayType(str, Enum):
    """Reference point used when scheduling a step."""
    AFTER_PREVIOUS = 'AFTER_PREVIOUS'
    FIXED_DATE = 'FIXED_DATE'
    AFTER_ASSIGNMENT_START = 'AFTER_ASSIGNMENT_START'


class AssignmentStatus(str, Enum):
    ACTIVE = 'ACTIVE'
    PAUSED = 'PAUSED'
    COMPLETED = 'COMPLETED'
    STOPPED = 'STOPPED'


class ActivityStatus(str, Enum):
    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    SKIPPED = 'SKIPPED'


TERMINAL_ASSIGNMENT_STATUSES = frozenset({AssignmentStatus.COMPLETED.value, AssignmentStatus.STOPPED.value})
REPORTABLE_ACTIVITY_STATUSES = frozenset({
    ActivityStatus.COMPLETED.value,
    ActivityStatus.FAILED.value,
    ActivityStatus.SKIPPED.value,
})
