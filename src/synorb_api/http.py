from __future__ import annotations

from typing import Any, Mapping, Optional

from flask import jsonify, request

from synorb_common.errors import typed_error


def json_response(payload: Any, *, status: int = 200, extra_headers: Optional[Mapping[str, str]] = None):
    """Return JSON with the request id echoed back."""
    resp = jsonify(payload)
    resp.status_code = status

    req_id = getattr(request, "request_id", None)
    if req_id is not None:
        resp.headers["X-Request-Id"] = req_id

    for k, v in (extra_headers or {}).items():
        resp.headers[k] = v
    return resp


def api_error(
    code: str,
    message: str,
    *,
    status: int = 400,
    details: Optional[Mapping[str, Any]] = None,
    **extra: Any,
):
    """Return a consistent error envelope via json_response()."""
    payload = typed_error(code, message, details=dict(details) if details else None, **extra)
    return json_response(payload, status=status)
