"""Shared utilities."""

import json
from typing import Any

from flask import Response


def json_response(data: dict[str, Any], status: int = 200) -> Response:
    """Create a Flask JSON response."""
    return Response(json.dumps(data, ensure_ascii=False), status=status, mimetype="application/json")


def error_body(message: str, code: str) -> dict[str, Any]:
    """Build the user-facing error payload."""
    return {"error": message, "code": code}
