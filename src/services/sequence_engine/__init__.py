"""
Sequence engine services package.

This package contains the prospecting sequence engine:
- core.py: SequenceEngine facade wiring the components below
- storage.py: persistence port and its SQLAlchemy implementation
- definition_store.py: sequences, steps and step numbering
- assignment_manager.py: prospect assignment, pause/resume/stop
- step_advancer.py: the assignment state machine
- delay_calculator.py: scheduling of a step's activity
- stats.py: funnel statistics
- errors.py: error taxonomy
"""

from .core import SequenceEngine, EXAMPLE_SEQUENCE, get_sequence_engine
from .errors import (
    SequenceEngineError, ValidationError, NotFoundError, ConflictError, InvalidStateError, InternalError
)
from .step_advancer import AdvanceResult
from .storage import SequenceStorage, SQLAlchemyStorage

__all__ = [
    'SequenceEngine', 'EXAMPLE_SEQUENCE', 'get_sequence_engine', 'AdvanceResult',
    'SequenceStorage', 'SQLAlchemyStorage',
    'SequenceEngineError', 'ValidationError', 'NotFoundError', 'ConflictError',
    'InvalidStateError', 'InternalError'
]
