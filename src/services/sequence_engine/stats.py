"""
Funnel statistics for a sequence. Read-only.
"""

import logging
from typing import Any, Dict

from src.models.enums import AssignmentStatus
from .errors import NotFoundError
from .storage import SequenceStorage

logger = logging.getLogger(__name__)

UNKNOWN_STAGE = 'UNKNOWN'


class StatsAggregator:
    """Derive funnel metrics from a sequence's assignments."""

    def __init__(self, storage: SequenceStorage):
        self.storage = storage

    def sequence_stats(self, sequence_id: str) -> Dict[str, Any]:
        if self.storage.get_sequence(sequence_id) is None:
            raise NotFoundError("Sequence", sequence_id)

        assignments = self.storage.list_assignments(sequence_id)
        prospects = self.storage.get_prospects(a.prospect_id for a in assignments)
        total = len(assignments)

        by_status = {status.value: 0 for status in AssignmentStatus}
        by_stage: Dict[str, int] = {}
        conversions = 0
        steps_completed = 0

        for assignment in assignments:
            by_status[assignment.status] = by_status.get(assignment.status, 0) + 1
            steps_completed += assignment.completed_steps or 0

            prospect = prospects.get(assignment.prospect_id)
            stage = prospect.stage if prospect is not None and prospect.stage else UNKNOWN_STAGE
            by_stage[stage] = by_stage.get(stage, 0) + 1
            if prospect is not None and prospect.is_converted:
                conversions += 1

        return {
            'total_assignments': total,
            'active': by_status[AssignmentStatus.ACTIVE.value],
            'paused': by_status[AssignmentStatus.PAUSED.value],
            'completed': by_status[AssignmentStatus.COMPLETED.value],
            'stopped': by_status[AssignmentStatus.STOPPED.value],
            'conversions': conversions,
            'conversion_rate': round(conversions / total * 100, 1) if total else 0,
            'avg_steps_completed': round(steps_completed / total, 2) if total else 0,
            'by_stage': by_stage,
        }
