"""
Scheduler services package.

- core.py: background tick driver for the sequence engine
"""

from .core import SequenceTickScheduler, get_tick_scheduler

# Export the main scheduler class and function
__all__ = ['SequenceTickScheduler', 'get_tick_scheduler']
