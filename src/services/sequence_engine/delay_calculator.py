"""
Delay calculations and timing logic.

This module contains functionality for:
- Scheduling a step relative to now, a fixed date or the assignment start
"""

import logging
from datetime import datetime, timedelta

from src.models.enums import DelayType
from .errors import ValidationError

logger = logging.getLogger(__name__)


def calculate_scheduled_at(step, assignment, now: datetime) -> datetime:
    """Compute when the activity for ``step`` should run.
    
    AFTER_PREVIOUS counts calendar days from now, AFTER_ASSIGNMENT_START from
    the assignment's start, and FIXED_DATE uses the step's date as-is.
    """
    delay_type = step.delay_type or DelayType.AFTER_PREVIOUS.value
    delay = timedelta(days=step.delay_days or 0)
    
    if delay_type == DelayType.AFTER_PREVIOUS.value:
        return now + delay
    
    if delay_type == DelayType.AFTER_ASSIGNMENT_START.value:
        return assignment.started_at + delay
    
    if delay_type == DelayType.FIXED_DATE.value:
        if step.fixed_date is None:
            raise ValidationError(
                f"Step {step.step_number} uses FIXED_DATE but has no fixed_date",
                {'step_id': step.id}
            )
        return step.fixed_date
    
    logger.error(f"Unknown delay type '{delay_type}' on step {step.id}")
    raise ValidationError(f"Unknown delay_type '{delay_type}'", {'step_id': step.id})
