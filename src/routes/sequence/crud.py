"""
Basic CRUD operations for sequences.

This module contains functionality for:
- Listing and getting sequence definitions
- Creating, updating and deleting sequence definitions
- Sequence funnel statistics
- Getting the example sequence
"""

import logging
from flask import current_app

from src.schemas.sequence import SequenceCreate, SequenceUpdate
from src.services.sequence_engine import EXAMPLE_SEQUENCE
from src.utils.responses import create_success_response
from .helpers import current_user_id, get_engine, parse_body, parse_bool_arg

logger = logging.getLogger(__name__)

# Import the blueprint from the package
from . import sequence_bp


@sequence_bp.route('/sequences', methods=['GET'])
def list_sequences():
    """List sequence definitions, newest first, optionally filtered on isActive."""
    is_active = parse_bool_arg('isActive', 'is_active')
    engine = get_engine()
    
    sequences = []
    for sequence in engine.definitions.list_sequences(is_active):
        data = sequence.to_dict(steps=engine.storage.list_steps(sequence.id))
        data['step_count'] = sequence.total_steps
        data['assignment_count'] = engine.storage.count_assignments(sequence.id)
        sequences.append(data)
    
    return create_success_response(sequences)


@sequence_bp.route('/sequences/<sequence_id>', methods=['GET'])
def get_sequence(sequence_id):
    """Get a sequence with its steps and its most recent assignments."""
    engine = get_engine()
    sequence = engine.definitions.get_sequence(sequence_id)
    
    assignments = engine.storage.list_assignments(
        sequence_id, limit=current_app.config.get('RECENT_ASSIGNMENTS_LIMIT', 10)
    )
    prospects = engine.storage.get_prospects(a.prospect_id for a in assignments)
    activities_limit = current_app.config.get('RECENT_ACTIVITIES_LIMIT', 5)
    
    data = sequence.to_dict(steps=engine.storage.list_steps(sequence_id))
    data['assignment_count'] = engine.storage.count_assignments(sequence_id)
    data['recent_assignments'] = [
        assignment.to_dict(
            activities=engine.storage.list_activities(assignment.id, activities_limit),
            prospect=prospects.get(assignment.prospect_id)
        )
        for assignment in assignments
    ]
    return create_success_response(data)


@sequence_bp.route('/sequences', methods=['POST'])
def create_sequence():
    """Create a sequence definition with its initial steps."""
    payload = parse_body(SequenceCreate, "sequence")
    engine = get_engine()
    
    sequence = engine.create_sequence(
        payload.name,
        payload.steps,
        description=payload.description,
        is_active=payload.is_active,
        created_by_id=current_user_id()
    )
    data = sequence.to_dict(steps=engine.storage.list_steps(sequence.id))
    return create_success_response(data, "Sequence created successfully", 201)


@sequence_bp.route('/sequences/<sequence_id>', methods=['PUT'])
def update_sequence(sequence_id):
    """Update name, description or active flag of a sequence."""
    payload = parse_body(SequenceUpdate, "sequence update")
    engine = get_engine()
    sequence = engine.update_sequence(sequence_id, payload)
    data = sequence.to_dict(steps=engine.storage.list_steps(sequence_id))
    return create_success_response(data, "Sequence updated successfully")


@sequence_bp.route('/sequences/<sequence_id>', methods=['DELETE'])
def delete_sequence(sequence_id):
    """Delete a sequence with its steps, assignments and activities."""
    get_engine().delete_sequence(sequence_id)
    return create_success_response({'id': sequence_id}, "Sequence deleted successfully")


@sequence_bp.route('/sequences/<sequence_id>/stats', methods=['GET'])
def get_sequence_stats(sequence_id):
    """Funnel statistics for a sequence."""
    engine = get_engine()
    stats = engine.sequence_stats(sequence_id)
    sequence = engine.definitions.get_sequence(sequence_id)
    return create_success_response({'sequence': sequence.to_dict(), 'stats': stats})


@sequence_bp.route('/sequences/example', methods=['GET'])
def get_example_sequence():
    """Get an example sequence definition."""
    return create_success_response({
        'example_sequence': EXAMPLE_SEQUENCE,
        'description': 'Example 3-step outbound prospecting sequence'
    })
