"""
Lightweight HTTP client shared by the upstream Synorb client.

- Centralizes timeouts, the User-Agent and failure logging.
- Keeps dependencies limited to `requests`.
- No retries: each tool call maps to exactly one upstream request.

This module avoids any framework coupling (Flask/MCP/etc.).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping

import requests
from requests import Response


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = (3.05, 30.0)


@dataclass(frozen=True)
class HttpClientConfig:
    timeout: tuple[float, float] = DEFAULT_TIMEOUT
    user_agent: str = "synorb-mcp/1.0"


class HttpClient:
    """A small wrapper around `requests.Session` with sane defaults."""

    def __init__(self, *, config: HttpClientConfig | None = None, session: requests.Session | None = None) -> None:
        self.config = config or HttpClientConfig()
        self.session = session if session is not None else requests.Session()
        self.session.headers.setdefault("User-Agent", self.config.user_agent)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        timeout: tuple[float, float] | float | None = None,
        **kwargs: Any,
    ) -> Response:
        """Perform an HTTP request and raise for non-2xx responses."""
        t0 = time.perf_counter()
        try:
            resp = self.session.request(
                method=method,
                url=url,
                headers=dict(headers) if headers else None,
                params=dict(params) if params else None,
                timeout=timeout or self.config.timeout,
                **kwargs,
            )
            resp.raise_for_status()
            return resp
        except requests.RequestException as e:
            ms = int((time.perf_counter() - t0) * 1000)
            status = getattr(getattr(e, "response", None), "status_code", None)
            logger.warning(
                "HTTP %s %s failed (status=%s, ms=%s): %s",
                method.upper(),
                url,
                status,
                ms,
                str(e),
            )
            raise

    def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        timeout: tuple[float, float] | float | None = None,
        **kwargs: Any,
    ) -> Response:
        return self.request("GET", url, headers=headers, params=params, timeout=timeout, **kwargs)
