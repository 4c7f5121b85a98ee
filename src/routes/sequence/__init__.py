"""
Sequence routes package.

This package contains the sequence engine's HTTP surface:
- crud.py: sequence definitions and their stats
- steps.py: adding, updating and deleting steps
- assignments.py: prospect assignment, ticks, status changes and outcome reports
- helpers.py: request parsing and engine access shared by the modules above
"""

from flask import Blueprint

# Create the main sequence blueprint
sequence_bp = Blueprint('sequence', __name__)

# Import all route modules to register them
from . import crud
from . import steps
from . import assignments

# Export the blueprint
__all__ = ['sequence_bp']
