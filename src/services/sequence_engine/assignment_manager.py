"""
Assignment manager: binds prospects to sequences.

Bulk assignment is idempotent. A (prospect, sequence) pair that is already
assigned, or repeated within the same request, is skipped rather than
reported. Pause, resume and stop only flip the status; they take effect on
the next tick.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from src.models import SequenceAssignment, SequenceActivity
from src.models.enums import ActivityStatus, AssignmentStatus
from src.utils.dates import utcnow
from .errors import InvalidStateError, NotFoundError, ValidationError
from .storage import SequenceStorage

logger = logging.getLogger(__name__)


@dataclass
class AssignmentBatch:
    """Outcome of a bulk assignment."""
    created: List[SequenceAssignment] = field(default_factory=list)
    skipped_prospect_ids: List[str] = field(default_factory=list)

    @property
    def requested(self) -> int:
        return len(self.created) + len(self.skipped_prospect_ids)


class AssignmentManager:
    """Create assignments and handle external status changes."""

    def __init__(self, storage: SequenceStorage, clock=utcnow):
        self.storage = storage
        self.clock = clock

    def get_assignment(self, assignment_id: str) -> SequenceAssignment:
        assignment = self.storage.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def list_activities(self, assignment_id: str, limit: Optional[int] = None) -> List[SequenceActivity]:
        self.get_assignment(assignment_id)
        return self.storage.list_activities(assignment_id, limit)

    def assign_prospects(
        self,
        sequence_id: str,
        prospect_ids: Iterable[str],
        assigned_by_id: Optional[str] = None,
    ) -> AssignmentBatch:
        """Create ACTIVE assignments at step 1. Schedules nothing."""
        requested = [str(pid) for pid in (prospect_ids or []) if pid is not None and str(pid).strip()]
        if not requested:
            raise ValidationError("prospect_ids must contain at least one id")

        batch = AssignmentBatch()
        now = self.clock()

        with self.storage.transaction():
            sequence = self.storage.get_sequence(sequence_id)
            if sequence is None:
                raise NotFoundError("Sequence", sequence_id)
            if not sequence.is_active:
                raise InvalidStateError(f"Sequence {sequence_id} is inactive and cannot receive prospects")

            known = self.storage.get_prospects(requested)
            missing = sorted({pid for pid in requested if pid not in known})
            if missing:
                raise NotFoundError("Prospect", details={'missing_prospect_ids': missing})

            already_assigned = self.storage.find_assigned_prospect_ids(sequence_id, requested)
            seen = set()
            for prospect_id in requested:
                if prospect_id in already_assigned or prospect_id in seen:
                    batch.skipped_prospect_ids.append(prospect_id)
                    continue
                seen.add(prospect_id)
                batch.created.append(self.storage.add_assignment(SequenceAssignment(
                    sequence_id=sequence_id,
                    prospect_id=prospect_id,
                    assigned_by_id=assigned_by_id,
                    status=AssignmentStatus.ACTIVE.value,
                    current_step=1,
                    completed_steps=0,
                    started_at=now,
                )))

        logger.info(
            f"Assigned {len(batch.created)} prospects to sequence {sequence_id} "
            f"({len(batch.skipped_prospect_ids)} already assigned)"
        )
        return batch

    def pause(self, assignment_id: str) -> SequenceAssignment:
        return self._transition(assignment_id, {AssignmentStatus.ACTIVE.value}, AssignmentStatus.PAUSED.value)

    def resume(self, assignment_id: str) -> SequenceAssignment:
        return self._transition(assignment_id, {AssignmentStatus.PAUSED.value}, AssignmentStatus.ACTIVE.value)

    def stop(self, assignment_id: str) -> SequenceAssignment:
        """Stop for good; a PENDING activity is marked SKIPPED."""
        return self._transition(
            assignment_id,
            {AssignmentStatus.ACTIVE.value, AssignmentStatus.PAUSED.value},
            AssignmentStatus.STOPPED.value,
        )

    def _transition(self, assignment_id: str, allowed_from: set, target: str) -> SequenceAssignment:
        with self.storage.transaction():
            assignment = self.storage.get_assignment_for_update(assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment", assignment_id)
            if assignment.status not in allowed_from:
                raise InvalidStateError(
                    f"Cannot move assignment {assignment_id} from {assignment.status} to {target}",
                    {'status': assignment.status, 'allowed_from': sorted(allowed_from)}
                )

            previous = assignment.status
            assignment.status = target
            if target == AssignmentStatus.STOPPED.value:
                now = self.clock()
                pending = self.storage.get_pending_activity(assignment_id)
                if pending is not None:
                    pending.status = ActivityStatus.SKIPPED.value
                    pending.executed_at = now
                    pending.notes = pending.notes or 'Assignment stopped'
                assignment.next_step_scheduled_at = None
                assignment.last_activity_at = now

        logger.info(f"Assignment {assignment_id}: {previous} -> {target}")
        return assignment
