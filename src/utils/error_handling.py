"""
Standardized Error Handling Utilities

This module provides the failure envelope shared by every endpoint:

    {"success": false, "error": {"code", "message", "details"?, "timestamp"}}

and maps sequence engine errors onto it.
"""

import logging
from typing import Dict, Any, Optional
from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from src.services.sequence_engine.errors import SequenceEngineError
from src.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Standard error codes
ERROR_CODES = {
    # Client errors (4xx)
    'VALIDATION_ERROR': 'VALIDATION_ERROR',
    'NOT_FOUND': 'NOT_FOUND',
    'CONFLICT': 'CONFLICT',
    'INVALID_STATE': 'INVALID_STATE',
    'UNAUTHORIZED': 'UNAUTHORIZED',
    'FORBIDDEN': 'FORBIDDEN',
    'BAD_REQUEST': 'BAD_REQUEST',
    
    # Server errors (5xx)
    'INTERNAL_ERROR': 'INTERNAL_ERROR',
    'DATABASE_ERROR': 'DATABASE_ERROR',
}

# HTTP status code mapping
STATUS_CODES = {
    'VALIDATION_ERROR': 400,
    'NOT_FOUND': 404,
    'CONFLICT': 409,
    'INVALID_STATE': 409,
    'UNAUTHORIZED': 401,
    'FORBIDDEN': 403,
    'BAD_REQUEST': 400,
    'INTERNAL_ERROR': 500,
    'DATABASE_ERROR': 500,
}

def create_error_response(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    status_code: Optional[int] = None
) -> tuple:
    """
    Create a standardized error response.
    
    Args:
        code: Error code from ERROR_CODES
        message: Human-readable error message
        details: Additional error details (optional)
        status_code: HTTP status code (optional, defaults to code mapping)
    
    Returns:
        Tuple of (json_response, status_code)
    """
    if code not in ERROR_CODES:
        logger.warning(f"Unknown error code used: {code}, defaulting to INTERNAL_ERROR")
        code = 'INTERNAL_ERROR'
    
    http_status = status_code or STATUS_CODES.get(code, 500)
    
    error_response = {
        'success': False,
        'error': {
            'code': code,
            'message': message,
            'timestamp': utcnow().isoformat() + 'Z'
        }
    }
    
    if details:
        error_response['error']['details'] = details
    
    return jsonify(error_response), http_status

def handle_validation_error(message: str, details: Optional[Dict[str, Any]] = None) -> tuple:
    """Handle validation errors (400)."""
    return create_error_response('VALIDATION_ERROR', message, details)

def handle_not_found_error(resource: str, resource_id: Optional[str] = None) -> tuple:
    """Handle not found errors (404)."""
    message = f"{resource} not found"
    if resource_id:
        message += f" with id: {resource_id}"
    return create_error_response('NOT_FOUND', message)

def handle_engine_error(error: SequenceEngineError) -> tuple:
    """Render a sequence engine error with the status its code maps to."""
    if error.code == 'INTERNAL_ERROR':
        logger.error(f"Sequence engine failure: {error.message}")
        return create_error_response('INTERNAL_ERROR', "An unexpected error occurred")
    return create_error_response(error.code, error.message, error.details)

def handle_database_error(error: Exception, operation: str = "database operation") -> tuple:
    """Handle database errors (500)."""
    logger.error(f"Database error during {operation}: {str(error)}")
    
    if isinstance(error, IntegrityError):
        return create_error_response('CONFLICT', f"Database constraint violation during {operation}")
    return create_error_response('DATABASE_ERROR', f"Database error during {operation}")

def handle_internal_error(error: Exception, operation: str = "operation") -> tuple:
    """Handle internal server errors (500)."""
    logger.error(f"Internal error during {operation}: {str(error)}")
    return create_error_response('INTERNAL_ERROR', f"An unexpected error occurred during {operation}")

def handle_exception(error: Exception, operation: str = "operation") -> tuple:
    """
    Generic exception handler that categorizes errors and returns appropriate responses.
    
    Args:
        error: The exception that occurred
        operation: Description of the operation being performed
    
    Returns:
        Tuple of (json_response, status_code)
    """
    if isinstance(error, SequenceEngineError):
        return handle_engine_error(error)
    elif isinstance(error, HTTPException):
        return create_error_response('BAD_REQUEST', error.description, status_code=error.code)
    elif isinstance(error, SQLAlchemyError):
        return handle_database_error(error, operation)
    else:
        return handle_internal_error(error, operation)
