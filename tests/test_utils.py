"""
Unit tests for Utility Functions.

This module tests the response envelopes, error mapping, date helpers and
the delay calculator.
"""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from src.services.sequence_engine import (
    ConflictError, InternalError, InvalidStateError, NotFoundError, ValidationError
)
from src.services.sequence_engine.delay_calculator import calculate_scheduled_at
from src.utils.dates import to_naive_utc, utcnow
from src.utils.error_handling import (
    create_error_response,
    handle_engine_error,
    handle_validation_error,
    ERROR_CODES,
    STATUS_CODES
)
from src.utils.responses import create_success_response


class TestErrorCodes:
    """Test error code constants."""
    
    def test_error_codes_structure(self):
        """Every error code has an HTTP status."""
        assert set(ERROR_CODES) == set(STATUS_CODES)
    
    def test_engine_codes_mapped(self):
        """Engine error codes map to the expected statuses."""
        assert STATUS_CODES['VALIDATION_ERROR'] == 400
        assert STATUS_CODES['NOT_FOUND'] == 404
        assert STATUS_CODES['CONFLICT'] == 409
        assert STATUS_CODES['INVALID_STATE'] == 409
        assert STATUS_CODES['INTERNAL_ERROR'] == 500


class TestErrorResponses:
    """Test the failure envelope."""
    
    def test_create_error_response(self, app):
        """Envelope carries success false, code, message and timestamp."""
        response, status = create_error_response('NOT_FOUND', 'Sequence not found', {'id': 'x'})
        body = response.get_json()
        
        assert status == 404
        assert body['success'] is False
        assert body['error']['code'] == 'NOT_FOUND'
        assert body['error']['message'] == 'Sequence not found'
        assert body['error']['details'] == {'id': 'x'}
        assert body['error']['timestamp'].endswith('Z')
    
    def test_unknown_code_falls_back(self, app):
        """Unknown codes become INTERNAL_ERROR."""
        response, status = create_error_response('NOPE', 'whatever')
        assert status == 500
        assert response.get_json()['error']['code'] == 'INTERNAL_ERROR'
    
    def test_validation_without_details(self, app):
        """details is omitted when empty."""
        response, status = handle_validation_error('Bad input')
        assert status == 400
        assert 'details' not in response.get_json()['error']
    
    @pytest.mark.parametrize('error, status, code', [
        (ValidationError('bad'), 400, 'VALIDATION_ERROR'),
        (NotFoundError('Sequence', 'abc'), 404, 'NOT_FOUND'),
        (ConflictError('busy'), 409, 'CONFLICT'),
        (InvalidStateError('terminal'), 409, 'INVALID_STATE'),
        (InternalError('db down'), 500, 'INTERNAL_ERROR'),
    ])
    def test_handle_engine_error(self, app, error, status, code):
        """Each engine error renders with its own code and status."""
        response, http_status = handle_engine_error(error)
        assert http_status == status
        assert response.get_json()['error']['code'] == code
    
    def test_internal_error_message_hidden(self, app):
        """Storage failure details are not leaked to the client."""
        response, _ = handle_engine_error(InternalError('connection refused on 10.0.0.3'))
        assert '10.0.0.3' not in response.get_json()['error']['message']
    
    def test_not_found_message(self):
        """NotFoundError names the resource and id."""
        assert NotFoundError('Assignment', 'a-1').message == 'Assignment not found with id: a-1'


class TestSuccessResponse:
    """Test the success envelope."""
    
    def test_with_message(self, app):
        response, status = create_success_response({'id': 1}, 'Created', 201)
        assert status == 201
        assert response.get_json() == {'success': True, 'data': {'id': 1}, 'message': 'Created'}
    
    def test_without_message(self, app):
        response, status = create_success_response([])
        assert status == 200
        assert response.get_json() == {'success': True, 'data': []}


class TestDates:
    """Test date helpers."""
    
    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None
    
    def test_to_naive_utc(self):
        """Aware datetimes are converted; naive ones are kept."""
        aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=5)))
        assert to_naive_utc(aware) == datetime(2024, 1, 1, 7, 0)
        assert to_naive_utc(datetime(2024, 1, 1, 12, 0)) == datetime(2024, 1, 1, 12, 0)


class TestDelayCalculator:
    """Test scheduling per delay type."""
    
    NOW = datetime(2024, 2, 10, 15, 30)
    START = datetime(2024, 2, 1, 9, 0)
    
    def _step(self, **fields):
        base = {'id': 's-1', 'step_number': 2, 'delay_days': 3, 'delay_type': 'AFTER_PREVIOUS', 'fixed_date': None}
        base.update(fields)
        return SimpleNamespace(**base)
    
    def test_after_previous(self):
        assignment = SimpleNamespace(started_at=self.START)
        assert calculate_scheduled_at(self._step(), assignment, self.NOW) == self.NOW + timedelta(days=3)
    
    def test_after_assignment_start(self):
        assignment = SimpleNamespace(started_at=self.START)
        step = self._step(delay_type='AFTER_ASSIGNMENT_START')
        assert calculate_scheduled_at(step, assignment, self.NOW) == self.START + timedelta(days=3)
    
    def test_fixed_date(self):
        """A fixed date in the past is returned as-is."""
        fixed = datetime(2024, 1, 15, 10, 0)
        step = self._step(delay_type='FIXED_DATE', fixed_date=fixed)
        assert calculate_scheduled_at(step, SimpleNamespace(started_at=self.START), self.NOW) == fixed
    
    def test_fixed_date_missing(self):
        step = self._step(delay_type='FIXED_DATE')
        with pytest.raises(ValidationError):
            calculate_scheduled_at(step, SimpleNamespace(started_at=self.START), self.NOW)
    
    def test_unknown_delay_type(self):
        with pytest.raises(ValidationError):
            calculate_scheduled_at(self._step(delay_type='NEXT_MOON'), SimpleNamespace(), self.NOW)
