"""
Core scheduler functionality.

This module contains the tick driver for the sequence engine:
- SequenceTickScheduler class
- Thread management
- Main processing loop
- Scheduler lifecycle management

Each pass ticks every ACTIVE assignment that has no PENDING activity. An
assignment that fails is logged and retried on the next pass; it never stops
the loop.
"""

import logging
import threading
from contextlib import nullcontext

from src.services.sequence_engine import SequenceEngineError, InvalidStateError, get_sequence_engine

logger = logging.getLogger(__name__)

# Global scheduler instance
_tick_scheduler = None


def get_tick_scheduler():
    """Get the global scheduler instance."""
    global _tick_scheduler
    if _tick_scheduler is None:
        _tick_scheduler = SequenceTickScheduler()
    return _tick_scheduler


class SequenceTickScheduler:
    """Simple background scheduler that advances sequence assignments."""
    
    def __init__(self, app=None, engine_factory=None):
        self.app = app
        self.engine_factory = engine_factory or get_sequence_engine
        self.running = False
        self.thread = None
        self._wakeup = threading.Event()
        
        self.tick_interval_seconds = 300
        
        if app is not None:
            self.init_app(app)
    
    def init_app(self, app):
        """Initialize the scheduler with the Flask app."""
        self.app = app
        self.tick_interval_seconds = app.config.get('TICK_INTERVAL_SECONDS', 300)
        logger.info(f"Tick scheduler initialized (interval {self.tick_interval_seconds}s)")
    
    def start(self):
        """Start the background processing thread."""
        if self.running:
            logger.warning("Scheduler is already running")
            return
        
        self.running = True
        self._wakeup.clear()
        self.thread = threading.Thread(target=self._process_loop, daemon=True)
        self.thread.start()
        logger.info("Tick scheduler started successfully")
    
    def stop(self, timeout=30):
        """Stop the background processing thread."""
        if not self.running:
            logger.info("Scheduler is already stopped")
            return
        
        logger.info("Stopping scheduler...")
        self.running = False
        self._wakeup.set()
        
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"Scheduler thread did not terminate within {timeout} seconds")
        
        logger.info("Scheduler stopped")
    
    def _process_loop(self):
        """Main processing loop for the scheduler."""
        logger.info("Starting scheduler processing loop")
        
        while self.running:
            try:
                summary = self.run_once()
                logger.info(
                    f"Tick pass complete: {summary['processed']} processed, "
                    f"{summary['scheduled']} scheduled, {summary['completed']} completed, "
                    f"{summary['errors']} errors; sleeping for {self.tick_interval_seconds} seconds"
                )
            except Exception as e:
                logger.error(f"Error in scheduler processing loop: {str(e)}")
            
            self._wakeup.wait(self.tick_interval_seconds)
        
        logger.info("Scheduler processing loop ended")
    
    def run_once(self):
        """Tick every ready assignment once and return a summary of the pass."""
        context = self.app.app_context() if self.app is not None else nullcontext()
        with context:
            engine = self.engine_factory()
            summary = {'processed': 0, 'scheduled': 0, 'completed': 0, 'errors': 0}
            
            assignment_ids = engine.storage.list_ready_assignment_ids()
            if assignment_ids:
                logger.debug(f"Found {len(assignment_ids)} assignments ready to advance")
            
            for assignment_id in assignment_ids:
                summary['processed'] += 1
                try:
                    result = engine.execute_next_step(assignment_id)
                except InvalidStateError as e:
                    # e.g. the sequence was deactivated; retried once it is reactivated
                    logger.debug(f"Skipping assignment {assignment_id}: {e.message}")
                    summary['errors'] += 1
                    continue
                except SequenceEngineError as e:
                    logger.error(f"Error advancing assignment {assignment_id}: {e.message}")
                    summary['errors'] += 1
                    continue
                
                if result.completed:
                    summary['completed'] += 1
                else:
                    summary['scheduled'] += 1
            
            return summary
