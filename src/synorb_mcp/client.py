from __future__ import annotations

import json
import logging
from typing import Any, Callable

import requests
from requests import Response

from synorb_config.settings import DEFAULT_API_BASE_URL, Settings
from synorb_mcp.http_client import HttpClient, HttpClientConfig
from synorb_mcp.models import Credentials, FeedQuery, UpstreamResult


logger = logging.getLogger(__name__)


def _error_message(exc: requests.RequestException) -> str:
    """Prefer the upstream body's ``message`` field, else the transport error text."""
    resp = getattr(exc, "response", None)
    if resp is not None:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return str(exc)


def _decode_body(resp: Response) -> Any:
    # markdown / html / newsml feeds come back as text
    try:
        return resp.json()
    except ValueError:
        return resp.text


class SynorbClient:
    """One method per Synorb Streams capability; every call is a single GET.

    Methods never raise for upstream or transport failures. They return an
    :class:`UpstreamResult` instead.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        base_url: str | None = None,
        http: HttpClient | None = None,
    ) -> None:
        self.credentials = credentials
        self.base_url = (base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self.http = http or HttpClient()

    @property
    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.credentials.api_key,
            "x-api-secret": self.credentials.secret,
            "Content-Type": "application/json",
        }

    def _get(self, path: str, params: dict[str, Any] | None = None) -> UpstreamResult:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        try:
            resp = self.http.get(url, headers=self.headers, params=params)
        except requests.RequestException as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            return UpstreamResult.failure(_error_message(e), status=status)
        return UpstreamResult.success(_decode_body(resp), status=resp.status_code)

    def test_connection(self) -> UpstreamResult:
        res = self._get("/content/meta")
        if not res.ok:
            return UpstreamResult.failure(f"Authentication failed: {res.error}", status=res.status)
        return UpstreamResult.success(
            {"success": True, "message": "Authentication successful", "data": res.data},
            status=res.status,
        )

    def get_meta(self) -> UpstreamResult:
        return self._get("/content/meta")

    def get_entity_types(self, feedid: str) -> UpstreamResult:
        return self._get(f"/content/entity-types/{feedid}")

    def get_entity_values(self, feedid: str, entity_type: str | None = None) -> UpstreamResult:
        params = {"entity_type": entity_type} if entity_type else None
        return self._get(f"/content/entity-values/{feedid}", params)

    def get_feed_content(self, query: FeedQuery) -> UpstreamResult:
        return self._get("/content/feed", feed_params(query))


def client_factory(settings: Settings) -> Callable[[Credentials], SynorbClient]:
    """Return a callable building clients that honor the configured base URL and timeouts."""
    config = HttpClientConfig(timeout=settings.timeout, user_agent=settings.user_agent)

    def build(credentials: Credentials) -> SynorbClient:
        return SynorbClient(credentials, base_url=settings.api_base_url, http=HttpClient(config=config))

    return build


def feed_params(query: FeedQuery) -> dict[str, Any]:
    """Query-string parameters for ``/content/feed``."""
    feed_id = query.feed_id
    if isinstance(feed_id, float) and feed_id.is_integer():
        feed_id = int(feed_id)

    params: dict[str, Any] = {
        "feed_id": feed_id,
        "format": query.format or "json",
        "page_num": query.page_num,
        "page_size": query.effective_page_size,
    }

    for name in ("published_date_from", "published_date_to", "created_on_from", "created_on_to"):
        value = getattr(query, name)
        if value:
            params[name] = value

    if query.is_active is not None:
        params["is_active"] = "true" if query.is_active else "false"

    # Sent as repeated body_sections=a&body_sections=b, not the bracketed body_sections[]=a form.
    if query.body_sections and query.format == "markdown":
        params["body_sections"] = list(query.body_sections)

    # One compact JSON array, e.g. entity_details=[{"entity_type":"person","entity_value":"x"}],
    # not the indexed entity_details[0][entity_type]=... form.
    if query.entity_details:
        params["entity_details"] = json.dumps(
            [e.to_dict() for e in query.entity_details], separators=(",", ":")
        )

    return params
