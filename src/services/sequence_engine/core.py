"""
Core sequence engine functionality.

``SequenceEngine`` wires the definition store, assignment manager, step
advancer and stats aggregator over a single storage and clock, so callers
(routes, the tick scheduler, tests) only build one object.
"""

import logging

from src.utils.dates import utcnow
from .assignment_manager import AssignmentManager
from .definition_store import DefinitionStore
from .stats import StatsAggregator
from .step_advancer import StepAdvancer
from .storage import SequenceStorage, SQLAlchemyStorage

logger = logging.getLogger(__name__)

# Example sequence definition, usable as a POST /sequences body
EXAMPLE_SEQUENCE = {
    "name": "Cold outbound - 3 touches",
    "description": "Intro email, follow-up call, break-up email",
    "steps": [
        {
            "name": "Intro email",
            "action_type": "EMAIL",
            "template_id": "intro-v1",
            "delay_days": 0,
            "delay_type": "AFTER_PREVIOUS"
        },
        {
            "name": "Follow-up call",
            "action_type": "CALL",
            "delay_days": 3,
            "delay_type": "AFTER_PREVIOUS"
        },
        {
            "name": "Break-up email",
            "action_type": "EMAIL",
            "template_id": "breakup-v1",
            "delay_days": 14,
            "delay_type": "AFTER_ASSIGNMENT_START"
        }
    ]
}


class SequenceEngine:
    """Entry point for every sequence operation."""

    def __init__(self, storage: SequenceStorage, clock=utcnow):
        self.storage = storage
        self.definitions = DefinitionStore(storage, clock)
        self.assignments = AssignmentManager(storage, clock)
        self.advancer = StepAdvancer(storage, clock)
        self.stats = StatsAggregator(storage)

    # Definition store
    def create_sequence(self, name, steps=(), description=None, is_active=True, created_by_id=None):
        return self.definitions.create_sequence(name, steps, description, is_active, created_by_id)

    def update_sequence(self, sequence_id, changes):
        return self.definitions.update_sequence(sequence_id, changes)

    def delete_sequence(self, sequence_id):
        return self.definitions.delete_sequence(sequence_id)

    def add_step(self, sequence_id, step):
        return self.definitions.add_step(sequence_id, step)

    def update_step(self, sequence_id, step_id, changes):
        return self.definitions.update_step(sequence_id, step_id, changes)

    def delete_step(self, sequence_id, step_id):
        return self.definitions.delete_step(sequence_id, step_id)

    # Assignment manager
    def assign_prospects(self, sequence_id, prospect_ids, assigned_by_id=None):
        return self.assignments.assign_prospects(sequence_id, prospect_ids, assigned_by_id)

    def pause_assignment(self, assignment_id):
        return self.assignments.pause(assignment_id)

    def resume_assignment(self, assignment_id):
        return self.assignments.resume(assignment_id)

    def stop_assignment(self, assignment_id):
        return self.assignments.stop(assignment_id)

    # Step advancer
    def execute_next_step(self, assignment_id):
        return self.advancer.execute_next_step(assignment_id)

    def report_outcome(self, activity_id, status, notes=None, executed_at=None):
        return self.advancer.report_outcome(activity_id, status, notes, executed_at)

    # Stats aggregator
    def sequence_stats(self, sequence_id):
        return self.stats.sequence_stats(sequence_id)


def get_sequence_engine(session=None, clock=utcnow) -> SequenceEngine:
    """Engine bound to the Flask-SQLAlchemy session (or the given one)."""
    if session is None:
        from src.extensions import db
        session = db.session
    return SequenceEngine(SQLAlchemyStorage(session), clock)
