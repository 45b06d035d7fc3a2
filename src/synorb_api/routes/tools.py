from __future__ import annotations

import logging
from typing import Any, Callable, Mapping
from urllib.parse import unquote

from flask import Blueprint, request

from synorb_common.errors import UnknownToolError
from synorb_mcp.dispatcher import ToolDispatcher
from synorb_mcp.models import Credentials, UpstreamResult
from synorb_mcp.registry import resolve_tool

from ..http import api_error, json_response


logger = logging.getLogger(__name__)

DispatcherFactory = Callable[[], ToolDispatcher]

# Deprecated per-tool routes, kept for clients that predate /mcp-call.
LEGACY_ROUTES: Mapping[str, str] = {
    "/test_connection": "test-connection",
    "/get_meta": "get-synorb-stream-meta",
    "/get_entity_types": "get-synorb-stream-entity-types",
    "/get_entity_values": "get-synorb-stream-entity-values",
    "/fetch_stories": "get-synorb-stream-feed-content",
    "/get-synorb-stream-feed-content": "get-synorb-stream-feed-content",
}

_BODY_CREDENTIAL_KEYS = ("api_key", "secret")


def _first(*values: Any) -> str:
    for v in values:
        if v:
            return str(v)
    return ""


def credentials_from_request(default: Credentials | None) -> Credentials:
    """Headers, then query parameters, then process defaults (per field).

    Query-string secrets are percent-decoded once more: relays double-encode them.
    """
    query_secret = request.args.get("secret")
    return Credentials(
        api_key=_first(
            request.headers.get("x-synorb-key"),
            request.args.get("api_key"),
            default.api_key if default else None,
        ),
        secret=_first(
            request.headers.get("x-synorb-secret"),
            unquote(query_secret) if query_secret else None,
            default.secret if default else None,
        ),
    )


def credentials_from_body(body: Mapping[str, Any], default: Credentials | None) -> Credentials:
    return Credentials(
        api_key=_first(body.get("api_key"), default.api_key if default else None),
        secret=_first(body.get("secret"), default.secret if default else None),
    )


def _legacy_body(tool_name: str, result: UpstreamResult) -> dict:
    # test-connection already reports {"success", "message", "data"}
    if tool_name == "test-connection" and result.ok:
        return result.data
    return result.to_dict()


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def make_tools_blueprint(*, dispatcher_factory: DispatcherFactory, default_credentials: Credentials | None) -> Blueprint:
    bp = Blueprint("tools", __name__)

    @bp.post("/mcp-call")
    def mcp_call():
        body = _json_body()
        name = body.get("name")
        arguments = body.get("arguments") or {}

        creds = credentials_from_request(default_credentials)
        if not creds.complete:
            logger.warning("mcp-call rejected: no API credentials on request or in environment")
            return api_error("auth_error", "API credentials not provided", status=401)

        try:
            resolve_tool(name)
        except UnknownToolError as e:
            logger.info("mcp-call rejected: %s", e.message)
            return api_error(e.code, e.message, status=400)

        logger.info("mcp-call %s", name)
        outcome = dispatcher_factory().execute(name, arguments, creds)
        if outcome.ok:
            return json_response(outcome.envelope)
        return json_response({"error": outcome.error, **outcome.envelope}, status=outcome.status)

    def _legacy_view(tool_name: str):
        def view():
            body = _json_body()
            creds = credentials_from_body(body, default_credentials)
            arguments = {k: v for k, v in body.items() if k not in _BODY_CREDENTIAL_KEYS}

            outcome = dispatcher_factory().execute(tool_name, arguments, creds)
            if outcome.result is not None:
                return json_response(_legacy_body(tool_name, outcome.result), status=outcome.status)
            err = outcome.error or {}
            return api_error(err.get("code", "internal"), err.get("message", ""), status=outcome.status)

        return view

    for path, tool_name in LEGACY_ROUTES.items():
        endpoint = "legacy_" + path.strip("/").replace("-", "_")
        bp.add_url_rule(path, endpoint=endpoint, view_func=_legacy_view(tool_name), methods=["POST"])

    return bp
