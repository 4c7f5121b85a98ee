"""
Assignment operations.

This module contains functionality for:
- Assigning prospects to a sequence
- Advancing an assignment by one tick
- Pausing, resuming and stopping assignments
- Recording the executor's outcome for an activity
"""

import logging

from src.schemas.sequence import ActivityReportRequest, AssignProspectsRequest
from src.utils.responses import create_success_response
from .helpers import current_user_id, get_engine, parse_body

logger = logging.getLogger(__name__)

# Import the blueprint from the package
from . import sequence_bp


@sequence_bp.route('/sequences/<sequence_id>/assign', methods=['POST'])
def assign_prospects(sequence_id):
    """Assign prospects to a sequence; already assigned prospects are skipped."""
    payload = parse_body(AssignProspectsRequest, "assignment request")
    batch = get_engine().assign_prospects(sequence_id, payload.prospect_ids, assigned_by_id=current_user_id())
    
    data = {
        'requested': batch.requested,
        'assigned': len(batch.created),
        'skipped': len(batch.skipped_prospect_ids),
        'skipped_prospect_ids': batch.skipped_prospect_ids,
        'assignments': [assignment.to_dict() for assignment in batch.created]
    }
    return create_success_response(data, f"{len(batch.created)} prospects assigned to sequence")


@sequence_bp.route('/assignments/<assignment_id>', methods=['GET'])
def get_assignment(assignment_id):
    """Get an assignment with all its activities."""
    engine = get_engine()
    assignment = engine.assignments.get_assignment(assignment_id)
    prospect = engine.storage.get_prospects([assignment.prospect_id]).get(assignment.prospect_id)
    data = assignment.to_dict(
        activities=engine.assignments.list_activities(assignment_id),
        prospect=prospect
    )
    return create_success_response(data)


@sequence_bp.route('/assignments/<assignment_id>/advance', methods=['POST'])
def advance_assignment(assignment_id):
    """Schedule the assignment's current step, or complete it past the last step."""
    result = get_engine().execute_next_step(assignment_id)
    message = "Sequence completed" if result.completed else "Next step scheduled"
    return create_success_response(result.to_dict(), message)


@sequence_bp.route('/assignments/<assignment_id>/pause', methods=['POST'])
def pause_assignment(assignment_id):
    assignment = get_engine().pause_assignment(assignment_id)
    return create_success_response(assignment.to_dict(), "Assignment paused")


@sequence_bp.route('/assignments/<assignment_id>/resume', methods=['POST'])
def resume_assignment(assignment_id):
    assignment = get_engine().resume_assignment(assignment_id)
    return create_success_response(assignment.to_dict(), "Assignment resumed")


@sequence_bp.route('/assignments/<assignment_id>/stop', methods=['POST'])
def stop_assignment(assignment_id):
    assignment = get_engine().stop_assignment(assignment_id)
    return create_success_response(assignment.to_dict(), "Assignment stopped")


@sequence_bp.route('/activities/<activity_id>/report', methods=['POST'])
def report_activity(activity_id):
    """Record the outcome of a scheduled activity."""
    payload = parse_body(ActivityReportRequest, "activity report")
    result = get_engine().report_outcome(
        activity_id,
        payload.status.value,
        notes=payload.notes,
        executed_at=payload.executed_at
    )
    data = {
        'activity': result.activity.to_dict(),
        'assignment': result.assignment.to_dict()
    }
    return create_success_response(data, f"Activity marked {result.activity.status}")
