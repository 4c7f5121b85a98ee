from src.schemas.sequence import (
    StepCreate, StepUpdate, SequenceCreate, SequenceUpdate,
    AssignProspectsRequest, ActivityReportRequest
)

__all__ = [
    'StepCreate', 'StepUpdate', 'SequenceCreate', 'SequenceUpdate',
    'AssignProspectsRequest', 'ActivityReportRequest'
]
