# Import db from extensions to use the same instance
from src.extensions import db

# Import all models to ensure they are registered with SQLAlchemy
from src.models.prospect import Prospect
from src.models.sequence import SequenceDefinition, SequenceStep
from src.models.assignment import SequenceAssignment, SequenceActivity

__all__ = ['db', 'Prospect', 'SequenceDefinition', 'SequenceStep', 'SequenceAssignment', 'SequenceActivity']
