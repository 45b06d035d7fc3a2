from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from synorb_common.errors import ArgumentValidationError, MissingCredentialsError, SynorbError
from synorb_common.telemetry import log_event
from synorb_mcp.client import SynorbClient
from synorb_mcp.models import Credentials, UpstreamResult
from synorb_mcp.registry import ToolDescriptor, resolve_tool
from synorb_mcp.validation import validate_arguments


logger = logging.getLogger(__name__)

ClientFactory = Callable[[Credentials], SynorbClient]


def text_envelope(text: str, *, is_error: bool = False) -> dict:
    env: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        env["isError"] = True
    return env


def success_envelope(data: Any) -> dict:
    return text_envelope(json.dumps(data, indent=2, ensure_ascii=False))


def error_envelope(message: str) -> dict:
    return text_envelope(f"Error: {message}", is_error=True)


@dataclass(frozen=True)
class Outcome:
    """Envelope plus the HTTP-equivalent status of one invocation."""

    envelope: dict
    status: int
    result: UpstreamResult | None = None
    error: dict | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_credentials(
    explicit: Credentials | None,
    default: Credentials | None,
) -> Credentials:
    """Explicit per-request credentials win; fall back to process defaults."""
    for creds in (explicit, default):
        if creds is not None and creds.complete:
            return creds
    raise MissingCredentialsError()


class ToolDispatcher:
    """Routes a (tool name, arguments) invocation to one SynorbClient call.

    ``client`` is an optional pre-built client shared across invocations; it
    is used whenever the resolved credentials match its own. Otherwise
    ``client_factory`` builds a fresh client for the request.
    """

    def __init__(
        self,
        *,
        default_credentials: Credentials | None = None,
        client: SynorbClient | None = None,
        client_factory: ClientFactory = SynorbClient,
        client_id: str = "synorb_mcp",
    ) -> None:
        self.default_credentials = default_credentials
        self.client = client
        self.client_factory = client_factory
        self.client_id = client_id

    def _client_for(self, credentials: Credentials) -> SynorbClient:
        if self.client is not None and self.client.credentials == credentials:
            return self.client
        return self.client_factory(credentials)

    def prepare(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        credentials: Credentials | None = None,
    ) -> tuple[Credentials, ToolDescriptor, dict]:
        creds = resolve_credentials(credentials, self.default_credentials)
        tool = resolve_tool(name)
        try:
            args = validate_arguments(tool.input_schema, arguments)
        except ArgumentValidationError as e:
            raise ArgumentValidationError(
                f"Invalid arguments for {tool.name}: {e.message}", field=e.field
            ) from e
        return creds, tool, args

    def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        credentials: Credentials | None = None,
    ) -> UpstreamResult:
        """Resolve, validate and call. Raises SynorbError subclasses for request errors."""
        creds, tool, args = self.prepare(name, arguments, credentials)
        return tool.handler(self._client_for(creds), args)

    def execute(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        credentials: Credentials | None = None,
    ) -> Outcome:
        """Run one invocation, never raising; every call writes one telemetry event."""
        t0 = time.perf_counter()
        try:
            result = self.invoke(name, arguments, credentials)
            if result.ok:
                outcome = Outcome(envelope=success_envelope(result.data), status=200, result=result)
            else:
                message = result.error or "upstream request failed"
                outcome = Outcome(
                    envelope=error_envelope(message),
                    status=502,
                    result=result,
                    error={"code": "upstream_error", "message": message, "status": result.status},
                )
        except SynorbError as e:
            outcome = Outcome(envelope=error_envelope(e.message), status=e.http_status, error=e.to_dict()["error"])
        except Exception as e:
            logger.exception("Tool %s failed unexpectedly", name)
            outcome = Outcome(envelope=error_envelope(str(e)), status=500, error={"code": "internal", "message": str(e)})

        logged_args = dict(arguments) if isinstance(arguments, Mapping) else {"_raw": arguments}
        record: dict[str, Any] = {"args": logged_args}
        if outcome.error:
            record["error"] = outcome.error
        log_event(
            "tool",
            str(name),
            record,
            ok=outcome.ok,
            ms=int((time.perf_counter() - t0) * 1000),
            client_id=self.client_id,
        )
        return outcome

    def dispatch(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        credentials: Credentials | None = None,
    ) -> dict:
        """Like :meth:`execute` but returns only the MCP content envelope."""
        return self.execute(name, arguments, credentials).envelope
