"""
Persistence port for the sequence engine.

The definition store, assignment manager, step advancer and stats aggregator
only talk to a ``SequenceStorage``. ``SQLAlchemyStorage`` is the production
implementation on top of the Flask-SQLAlchemy session; tests can swap in an
in-memory implementation.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from src.models import (
    Prospect, SequenceDefinition, SequenceStep, SequenceAssignment, SequenceActivity
)
from src.models.enums import ActivityStatus, AssignmentStatus
from .errors import ConflictError, InternalError

logger = logging.getLogger(__name__)


class SequenceStorage:
    """Interface every storage backend must implement."""

    @contextmanager
    def transaction(self):
        """Unit of work: commit on success, roll back on any exception."""
        raise NotImplementedError
        yield  # pragma: no cover

    # Sequences
    def get_sequence(self, sequence_id: str) -> Optional[SequenceDefinition]:
        raise NotImplementedError

    def list_sequences(self, is_active: Optional[bool] = None) -> List[SequenceDefinition]:
        raise NotImplementedError

    def add_sequence(self, sequence: SequenceDefinition) -> SequenceDefinition:
        raise NotImplementedError

    def delete_sequence(self, sequence: SequenceDefinition) -> None:
        raise NotImplementedError

    # Steps
    def list_steps(self, sequence_id: str) -> List[SequenceStep]:
        raise NotImplementedError

    def get_step(self, step_id: str) -> Optional[SequenceStep]:
        raise NotImplementedError

    def get_step_by_number(self, sequence_id: str, step_number: int) -> Optional[SequenceStep]:
        raise NotImplementedError

    def add_step(self, step: SequenceStep) -> SequenceStep:
        raise NotImplementedError

    def remove_step(self, step: SequenceStep) -> None:
        raise NotImplementedError

    def replace_step_ordering(self, sequence_id: str, ordered_steps: List[SequenceStep]) -> None:
        """Renumber ``ordered_steps`` to 1..N in a single operation."""
        raise NotImplementedError

    # Prospects
    def get_prospects(self, prospect_ids: Iterable[str]) -> Dict[str, Prospect]:
        raise NotImplementedError

    # Assignments
    def get_assignment(self, assignment_id: str) -> Optional[SequenceAssignment]:
        raise NotImplementedError

    def get_assignment_for_update(self, assignment_id: str) -> Optional[SequenceAssignment]:
        """Current row state, locked until the transaction ends."""
        raise NotImplementedError

    def list_assignments(self, sequence_id: str, limit: Optional[int] = None) -> List[SequenceAssignment]:
        """Assignments of a sequence, most recently started first."""
        raise NotImplementedError

    def count_assignments(self, sequence_id: str) -> int:
        raise NotImplementedError

    def find_assigned_prospect_ids(self, sequence_id: str, prospect_ids: Iterable[str]) -> Set[str]:
        raise NotImplementedError

    def add_assignment(self, assignment: SequenceAssignment) -> SequenceAssignment:
        raise NotImplementedError

    def list_ready_assignment_ids(self) -> List[str]:
        """ACTIVE assignments without a PENDING activity."""
        raise NotImplementedError

    # Activities
    def get_activity(self, activity_id: str) -> Optional[SequenceActivity]:
        raise NotImplementedError

    def get_activity_for_update(self, activity_id: str) -> Optional[SequenceActivity]:
        """Current row state, locked until the transaction ends."""
        raise NotImplementedError

    def get_pending_activity(self, assignment_id: str) -> Optional[SequenceActivity]:
        raise NotImplementedError

    def list_activities(self, assignment_id: str, limit: Optional[int] = None) -> List[SequenceActivity]:
        """Activities of an assignment ordered by scheduled time."""
        raise NotImplementedError

    def add_activity(self, activity: SequenceActivity) -> SequenceActivity:
        raise NotImplementedError


class SQLAlchemyStorage(SequenceStorage):
    """Storage backed by a SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Constraint violation, transaction rolled back: {str(e.orig)}")
            raise ConflictError("Operation conflicts with existing data") from e
        except StaleDataError as e:
            self.session.rollback()
            logger.warning(f"Concurrent modification detected: {str(e)}")
            raise ConflictError("Record was modified concurrently, retry the operation") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Storage error, transaction rolled back: {str(e)}")
            raise InternalError("Storage failure") from e
        except Exception:
            self.session.rollback()
            raise

    # Sequences
    def get_sequence(self, sequence_id):
        return self.session.get(SequenceDefinition, sequence_id)

    def list_sequences(self, is_active=None):
        query = self.session.query(SequenceDefinition)
        if is_active is not None:
            query = query.filter(SequenceDefinition.is_active == is_active)
        return query.order_by(SequenceDefinition.created_at.desc()).all()

    def add_sequence(self, sequence):
        self.session.add(sequence)
        self.session.flush()
        return sequence

    def delete_sequence(self, sequence):
        self.session.delete(sequence)
        self.session.flush()

    # Steps
    def list_steps(self, sequence_id):
        return (
            self.session.query(SequenceStep)
            .filter(SequenceStep.sequence_id == sequence_id)
            .order_by(SequenceStep.step_number.asc())
            .all()
        )

    def get_step(self, step_id):
        return self.session.get(SequenceStep, step_id)

    def get_step_by_number(self, sequence_id, step_number):
        return (
            self.session.query(SequenceStep)
            .filter(SequenceStep.sequence_id == sequence_id, SequenceStep.step_number == step_number)
            .first()
        )

    def add_step(self, step):
        self.session.add(step)
        self.session.flush()
        return step

    def remove_step(self, step):
        self.session.delete(step)
        self.session.flush()

    def replace_step_ordering(self, sequence_id, ordered_steps):
        # Park every row on a negative number first so the (sequence_id, step_number)
        # unique constraint never sees two rows with the same target number.
        for index, step in enumerate(ordered_steps):
            step.step_number = -(index + 1)
        self.session.flush()
        for index, step in enumerate(ordered_steps):
            step.step_number = index + 1
        self.session.flush()

    # Prospects
    def get_prospects(self, prospect_ids):
        ids = list(set(prospect_ids))
        if not ids:
            return {}
        rows = self.session.query(Prospect).filter(Prospect.id.in_(ids)).all()
        return {row.id: row for row in rows}

    # Assignments
    def get_assignment(self, assignment_id):
        return self.session.get(SequenceAssignment, assignment_id)

    def get_assignment_for_update(self, assignment_id):
        # populate_existing refreshes an instance already held in the identity map
        return (
            self.session.query(SequenceAssignment)
            .filter(SequenceAssignment.id == assignment_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def list_assignments(self, sequence_id, limit=None):
        query = (
            self.session.query(SequenceAssignment)
            .filter(SequenceAssignment.sequence_id == sequence_id)
            .order_by(SequenceAssignment.started_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_assignments(self, sequence_id):
        return (
            self.session.query(func.count(SequenceAssignment.id))
            .filter(SequenceAssignment.sequence_id == sequence_id)
            .scalar()
        ) or 0

    def find_assigned_prospect_ids(self, sequence_id, prospect_ids):
        ids = list(set(prospect_ids))
        if not ids:
            return set()
        rows = (
            self.session.query(SequenceAssignment.prospect_id)
            .filter(SequenceAssignment.sequence_id == sequence_id, SequenceAssignment.prospect_id.in_(ids))
            .all()
        )
        return {row[0] for row in rows}

    def add_assignment(self, assignment):
        self.session.add(assignment)
        self.session.flush()
        return assignment

    def list_ready_assignment_ids(self):
        pending = (
            select(SequenceActivity.assignment_id)
            .where(SequenceActivity.status == ActivityStatus.PENDING.value)
        )
        rows = (
            self.session.query(SequenceAssignment.id)
            .filter(
                SequenceAssignment.status == AssignmentStatus.ACTIVE.value,
                ~SequenceAssignment.id.in_(pending)
            )
            .order_by(SequenceAssignment.started_at.asc())
            .all()
        )
        return [row[0] for row in rows]

    # Activities
    def get_activity(self, activity_id):
        return self.session.get(SequenceActivity, activity_id)

    def get_activity_for_update(self, activity_id):
        return (
            self.session.query(SequenceActivity)
            .filter(SequenceActivity.id == activity_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def get_pending_activity(self, assignment_id):
        return (
            self.session.query(SequenceActivity)
            .filter(
                SequenceActivity.assignment_id == assignment_id,
                SequenceActivity.status == ActivityStatus.PENDING.value
            )
            .first()
        )

    def list_activities(self, assignment_id, limit=None):
        query = (
            self.session.query(SequenceActivity)
            .filter(SequenceActivity.assignment_id == assignment_id)
            .order_by(SequenceActivity.scheduled_at.asc(), SequenceActivity.created_at.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def add_activity(self, activity):
        self.session.add(activity)
        self.session.flush()
        return activity
