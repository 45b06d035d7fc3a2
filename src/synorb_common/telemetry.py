from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import uuid
from contextvars import ContextVar
from typing import Any

from synorb_config.settings import telemetry_dir
from synorb_common.errors import REDACT_TOKEN


logger = logging.getLogger(__name__)

TELEMETRY_FILE = "mcp-telemetry.jsonl"

_SECRET_KEYS = {
    "api_key",
    "apikey",
    "secret",
    "api_secret",
    "x-api-key",
    "x-api-secret",
    "x-synorb-key",
    "x-synorb-secret",
    "authorization",
    "token",
}

# Set by the HTTP transport per request; stdio calls run without one.
_request_id: ContextVar[str | None] = ContextVar("synorb_request_id", default=None)


def set_request_id(rid: str | None) -> None:
    _request_id.set(rid or None)


def current_request_id() -> str | None:
    return _request_id.get()


def _disabled() -> bool:
    return os.getenv("SYNORB_DISABLE_TELEMETRY", "0").strip().lower() in {"1", "true", "yes"}


def redact_secrets(obj: Any) -> Any:
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.strip().lower() in _SECRET_KEYS:
                out[k] = REDACT_TOKEN
            else:
                out[k] = redact_secrets(v)
        return out
    if isinstance(obj, list):
        return [redact_secrets(x) for x in obj]
    return obj


def log_event(
    kind: str,
    name: str,
    args: dict | None = None,
    ok: bool = True,
    ms: int = 0,
    *,
    client_id: str | None = None,
    telemetry_file: str = TELEMETRY_FILE,
) -> None:
    """
    Append one JSONL record per tool call.

    Records carry the current request id, or a fresh one per event when the
    call did not come through the HTTP transport.
    """
    if _disabled():
        return

    rec = {
        "ts": _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "name": name,
        "client_id": client_id,
        "request_id": current_request_id() or uuid.uuid4().hex,
        "args": {} if args is None else dict(args),
        "ok": bool(ok),
        "ms": int(ms),
    }

    safe = redact_secrets(rec)
    d = telemetry_dir()
    try:
        d.mkdir(parents=True, exist_ok=True)
        with (d / telemetry_file).open("a", encoding="utf-8") as f:
            f.write(json.dumps(safe, ensure_ascii=False, default=str) + "\n")
    except OSError as e:
        # Telemetry must never fail a tool call.
        logger.warning("Could not write telemetry to %s: %s", d, e)
