from typing import Any, Optional
from flask import jsonify


def create_success_response(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> tuple:
    """Success envelope: ``{"success": true, "data": ..., "message"?: ...}``."""
    body = {'success': True, 'data': data}
    if message:
        body['message'] = message
    return jsonify(body), status_code
