"""
Helpers shared by the sequence route modules.
"""

import logging
from typing import Optional

from flask import request
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from src.services.sequence_engine import ValidationError, get_sequence_engine
from src.services.sequence_engine.definition_store import coerce_payload

logger = logging.getLogger(__name__)

_TRUE_VALUES = {'true', '1', 'yes'}
_FALSE_VALUES = {'false', '0', 'no'}


def get_engine():
    """Sequence engine bound to the request's database session."""
    return get_sequence_engine()


def parse_body(schema, label: str = "request body"):
    """Validate the JSON body against a request DTO."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return coerce_payload(schema, data, label)


def parse_bool_arg(*names: str) -> Optional[bool]:
    """Read an optional boolean query parameter, trying each name in turn."""
    for name in names:
        raw = request.args.get(name)
        if raw is None:
            continue
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValidationError(f"Query parameter '{name}' must be true or false", {'value': raw})
    return None


def current_user_id() -> Optional[str]:
    """Identity of the caller when a valid JWT is sent; anonymous otherwise."""
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError) as e:
        logger.warning(f"Ignoring invalid access token: {str(e)}")
        return None
    identity = get_jwt_identity()
    return str(identity) if identity is not None else None
