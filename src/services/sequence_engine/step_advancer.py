"""
Step advancer: the assignment state machine.

    ACTIVE  -> ACTIVE (next step scheduled) | COMPLETED | PAUSED | STOPPED
    PAUSED  -> ACTIVE (resume only)
    COMPLETED, STOPPED: terminal

A tick (``execute_next_step``) schedules exactly one PENDING activity for the
assignment's current step, or completes the assignment once every step has
been worked through. ``current_step`` only moves when the external executor
reports the outcome of that activity (``report_outcome``).

Ticks and reports for the same assignment are serialized in-process by a lock
keyed on the assignment id. Across processes the partial unique index on
PENDING activities and the version columns on assignments and activities
turn a lost race into a ConflictError. Every decision is taken on a fresh,
locked read of the rows, never on an instance cached by an earlier read.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from src.models import SequenceActivity, SequenceAssignment, SequenceStep
from src.models.enums import (
    ActivityStatus, AssignmentStatus, REPORTABLE_ACTIVITY_STATUSES, TERMINAL_ASSIGNMENT_STATUSES
)
from src.utils.dates import utcnow
from .delay_calculator import calculate_scheduled_at
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .storage import SequenceStorage

logger = logging.getLogger(__name__)


class KeyedLocks:
    """One lock per key, dropped again once nobody holds or waits for it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)


_assignment_locks = KeyedLocks()


@dataclass
class AdvanceResult:
    """What a tick did: either scheduled ``activity`` for ``step`` or completed the assignment."""
    assignment: SequenceAssignment
    activity: Optional[SequenceActivity] = None
    step: Optional[SequenceStep] = None
    completed: bool = False

    def to_dict(self):
        return {
            'assignment': self.assignment.to_dict(),
            'activity': self.activity.to_dict() if self.activity else None,
            'current_step': self.step.to_dict() if self.step else None,
            'completed': self.completed,
        }


class StepAdvancer:
    """Advance assignments one tick at a time."""

    def __init__(self, storage: SequenceStorage, clock=utcnow, locks: Optional[KeyedLocks] = None):
        self.storage = storage
        self.clock = clock
        self.locks = locks or _assignment_locks

    def execute_next_step(self, assignment_id: str) -> AdvanceResult:
        with self.locks.hold(assignment_id):
            with self.storage.transaction():
                return self._tick(assignment_id)

    def _tick(self, assignment_id: str) -> AdvanceResult:
        assignment = self.storage.get_assignment_for_update(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)

        if assignment.status in TERMINAL_ASSIGNMENT_STATUSES:
            logger.warning(f"Tick rejected: assignment {assignment_id} is already {assignment.status}")
            raise InvalidStateError(
                f"Assignment {assignment_id} is {assignment.status} and cannot be advanced",
                {'status': assignment.status}
            )
        if assignment.status != AssignmentStatus.ACTIVE.value:
            logger.info(f"Tick rejected: assignment {assignment_id} is {assignment.status}")
            raise InvalidStateError(
                f"Assignment {assignment_id} is {assignment.status}; resume it before advancing",
                {'status': assignment.status}
            )

        sequence = self.storage.get_sequence(assignment.sequence_id)
        if sequence is None:
            raise NotFoundError("Sequence", assignment.sequence_id)
        if not sequence.is_active:
            raise InvalidStateError(
                f"Sequence {sequence.id} is inactive",
                {'sequence_id': sequence.id}
            )

        now = self.clock()

        if assignment.current_step > sequence.total_steps:
            assignment.status = AssignmentStatus.COMPLETED.value
            assignment.completed_at = now
            assignment.next_step_scheduled_at = None
            logger.info(f"Assignment {assignment_id} completed sequence {sequence.id}")
            return AdvanceResult(assignment=assignment, completed=True)

        pending = self.storage.get_pending_activity(assignment_id)
        if pending is not None:
            raise ConflictError(
                f"Step {pending.step_number} of assignment {assignment_id} is already scheduled",
                {'activity_id': pending.id, 'scheduled_at': pending.scheduled_at.isoformat()}
            )

        step = self.storage.get_step_by_number(sequence.id, assignment.current_step)
        if step is None:
            logger.error(
                f"Assignment {assignment_id} points at step {assignment.current_step} "
                f"which no longer exists in sequence {sequence.id}"
            )
            raise NotFoundError(f"Step {assignment.current_step} of sequence {sequence.id}")

        scheduled_at = calculate_scheduled_at(step, assignment, now)
        activity = self.storage.add_activity(SequenceActivity(
            assignment_id=assignment.id,
            step_id=step.id,
            step_number=assignment.current_step,
            action_type=step.action_type,
            status=ActivityStatus.PENDING.value,
            scheduled_at=scheduled_at,
            created_at=now,
        ))

        assignment.last_activity_at = now
        assignment.next_step_scheduled_at = scheduled_at

        logger.info(
            f"Scheduled step {step.step_number} ({step.action_type}) for assignment "
            f"{assignment_id} at {scheduled_at.isoformat()}"
        )
        return AdvanceResult(assignment=assignment, activity=activity, step=step)

    def report_outcome(
        self,
        activity_id: str,
        status: str,
        notes: Optional[str] = None,
        executed_at: Optional[datetime] = None,
    ) -> AdvanceResult:
        """Record the executor's outcome and move the assignment past that step.

        COMPLETED, FAILED and SKIPPED all advance ``current_step``; only
        COMPLETED counts towards ``completed_steps``. The next tick is left to
        the caller.
        """
        status = getattr(status, 'value', status)
        if status not in REPORTABLE_ACTIVITY_STATUSES:
            raise ValidationError(
                f"Invalid outcome '{status}'",
                {'allowed': sorted(REPORTABLE_ACTIVITY_STATUSES)}
            )

        activity = self.storage.get_activity(activity_id)
        if activity is None:
            raise NotFoundError("Activity", activity_id)

        with self.locks.hold(activity.assignment_id):
            with self.storage.transaction():
                return self._record(activity_id, status, notes, executed_at)

    def _record(self, activity_id, status, notes, executed_at) -> AdvanceResult:
        activity = self.storage.get_activity_for_update(activity_id)
        if activity is None:
            raise NotFoundError("Activity", activity_id)
        if activity.status != ActivityStatus.PENDING.value:
            raise ConflictError(
                f"Activity {activity_id} was already reported as {activity.status}",
                {'status': activity.status}
            )

        assignment = self.storage.get_assignment_for_update(activity.assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", activity.assignment_id)
        sequence = self.storage.get_sequence(assignment.sequence_id)

        now = self.clock()
        activity.status = status
        activity.executed_at = executed_at or now
        if notes is not None:
            activity.notes = notes

        if (
            assignment.status not in TERMINAL_ASSIGNMENT_STATUSES
            and activity.step_number == assignment.current_step
        ):
            # never past total_steps + 1, never backwards
            ceiling = sequence.total_steps + 1 if sequence else assignment.current_step + 1
            assignment.current_step = max(assignment.current_step, min(assignment.current_step + 1, ceiling))
            if status == ActivityStatus.COMPLETED.value:
                assignment.completed_steps = (assignment.completed_steps or 0) + 1
            assignment.last_activity_at = now
            assignment.next_step_scheduled_at = None
            logger.info(
                f"Activity {activity_id} reported {status}; assignment {assignment.id} "
                f"moves to step {assignment.current_step}"
            )
        else:
            logger.warning(
                f"Activity {activity_id} reported {status} but assignment {assignment.id} "
                f"is {assignment.status} at step {assignment.current_step}; progress unchanged"
            )

        return AdvanceResult(assignment=assignment, activity=activity)
