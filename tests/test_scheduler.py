"""
Unit tests for the tick scheduler.
"""

import pytest
from unittest.mock import Mock

from src.services.scheduler import SequenceTickScheduler, get_tick_scheduler
from src.services.sequence_engine import InternalError


class TestSequenceTickScheduler:
    """Test the background tick driver."""
    
    @pytest.mark.unit
    def test_run_once_summary(self, engine, two_step_sequence, prospect_ids):
        """One pass schedules every ready assignment exactly once."""
        engine.assign_prospects(two_step_sequence.id, prospect_ids)
        scheduler = SequenceTickScheduler(engine_factory=lambda: engine)
        
        summary = scheduler.run_once()
        
        assert summary == {'processed': 3, 'scheduled': 3, 'completed': 0, 'errors': 0}
        assert scheduler.run_once() == {'processed': 0, 'scheduled': 0, 'completed': 0, 'errors': 0}
    
    @pytest.mark.unit
    def test_run_once_completes_exhausted(self, engine, two_step_sequence, prospect_ids):
        """Assignments past their last step are completed by the pass."""
        assignment = engine.assign_prospects(two_step_sequence.id, ['p-1']).created[0]
        for _ in range(2):
            activity = engine.execute_next_step(assignment.id).activity
            engine.report_outcome(activity.id, 'COMPLETED')
        scheduler = SequenceTickScheduler(engine_factory=lambda: engine)
        
        assert scheduler.run_once()['completed'] == 1
        assert assignment.status == 'COMPLETED'
    
    @pytest.mark.unit
    def test_paused_assignments_ignored(self, engine, two_step_sequence, prospect_ids):
        """Paused assignments are not picked up."""
        batch = engine.assign_prospects(two_step_sequence.id, ['p-1', 'p-2'])
        engine.pause_assignment(batch.created[0].id)
        scheduler = SequenceTickScheduler(engine_factory=lambda: engine)
        
        assert scheduler.run_once()['processed'] == 1
    
    @pytest.mark.unit
    def test_errors_do_not_stop_pass(self):
        """A failing assignment is counted and the others still advance."""
        failing = Mock()
        failing.storage.list_ready_assignment_ids.return_value = ['a-1', 'a-2']
        failing.execute_next_step.side_effect = [InternalError("Storage failure"), Mock(completed=False)]
        scheduler = SequenceTickScheduler(engine_factory=lambda: failing)
        
        summary = scheduler.run_once()
        
        assert summary['errors'] == 1
        assert summary['scheduled'] == 1
    
    @pytest.mark.unit
    def test_inactive_sequence_counted_as_error(self, engine, two_step_sequence, prospect_ids):
        """Assignments of a deactivated sequence are skipped."""
        engine.assign_prospects(two_step_sequence.id, ['p-1'])
        engine.update_sequence(two_step_sequence.id, {'is_active': False})
        scheduler = SequenceTickScheduler(engine_factory=lambda: engine)
        
        assert scheduler.run_once() == {'processed': 1, 'scheduled': 0, 'completed': 0, 'errors': 1}
    
    @pytest.mark.integration
    def test_init_app_reads_interval(self, app):
        """The interval comes from TICK_INTERVAL_SECONDS."""
        app.config['TICK_INTERVAL_SECONDS'] = 42
        scheduler = SequenceTickScheduler()
        scheduler.init_app(app)
        assert scheduler.tick_interval_seconds == 42
    
    @pytest.mark.integration
    def test_run_once_against_database(self, app, client, sample_prospects):
        """A pass inside the app context uses the SQLAlchemy storage."""
        response = client.post('/api/v1/sequences', json={
            'name': 'Db pass',
            'steps': [{'actionType': 'EMAIL', 'delayDays': 0}]
        })
        sequence_id = response.get_json()['data']['id']
        client.post(f'/api/v1/sequences/{sequence_id}/assign',
                    json={'prospectIds': [p.id for p in sample_prospects]})
        
        scheduler = SequenceTickScheduler(app)
        
        assert scheduler.run_once()['scheduled'] == 3
        assert scheduler.run_once()['processed'] == 0
    
    @pytest.mark.unit
    def test_start_stop(self, engine):
        """The background thread starts and stops cleanly."""
        scheduler = SequenceTickScheduler(engine_factory=lambda: engine)
        scheduler.tick_interval_seconds = 60
        
        scheduler.start()
        assert scheduler.running is True
        scheduler.start()
        
        scheduler.stop(timeout=5)
        assert scheduler.running is False
        assert not scheduler.thread.is_alive()
    
    @pytest.mark.unit
    def test_global_instance(self):
        """get_tick_scheduler returns a singleton."""
        assert get_tick_scheduler() is get_tick_scheduler()
