"""
Step operations for sequences.

Steps are always numbered 1..N: new steps are appended, and deleting a
step renumbers the ones after it.
"""

import logging

from src.schemas.sequence import StepCreate, StepUpdate
from src.utils.responses import create_success_response
from .helpers import get_engine, parse_body

logger = logging.getLogger(__name__)

# Import the blueprint from the package
from . import sequence_bp


@sequence_bp.route('/sequences/<sequence_id>/steps', methods=['POST'])
def add_step(sequence_id):
    """Append a step to a sequence."""
    payload = parse_body(StepCreate, "step")
    step = get_engine().add_step(sequence_id, payload)
    return create_success_response(step.to_dict(), "Step added successfully", 201)


@sequence_bp.route('/sequences/<sequence_id>/steps/<step_id>', methods=['PUT'])
def update_step(sequence_id, step_id):
    """Update a step in place; its position cannot be changed."""
    payload = parse_body(StepUpdate, "step update")
    step = get_engine().update_step(sequence_id, step_id, payload)
    return create_success_response(step.to_dict(), "Step updated successfully")


@sequence_bp.route('/sequences/<sequence_id>/steps/<step_id>', methods=['DELETE'])
def delete_step(sequence_id, step_id):
    """Delete a step and return the renumbered remainder."""
    remaining = get_engine().delete_step(sequence_id, step_id)
    return create_success_response(
        {'sequence_id': sequence_id, 'steps': [step.to_dict() for step in remaining]},
        "Step deleted successfully"
    )
