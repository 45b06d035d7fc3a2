from __future__ import annotations

import json

import pytest

from synorb_api.app import create_app
from synorb_common.telemetry import TELEMETRY_FILE, set_request_id
from synorb_config.settings import Settings
from synorb_mcp.client import SynorbClient
from synorb_mcp.dispatcher import ToolDispatcher
from synorb_mcp.http_client import HttpClient
from synorb_mcp.models import Credentials
from tests.helpers.upstream import BASE_URL, FakeSession


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """No real credentials leak into tests; telemetry goes to a temp folder."""
    for name in ("SYNORB_API_KEY", "SYNORB_API_SECRET", "SYNORB_API_BASE_URL", "HTTP_MODE", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SYNORB_TELEMETRY_DIR", str(tmp_path / "telemetry"))
    yield
    set_request_id(None)


@pytest.fixture()
def telemetry_records(tmp_path):
    """Read back the JSONL telemetry written during the test."""

    def read() -> list[dict]:
        path = tmp_path / "telemetry" / TELEMETRY_FILE
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]

    return read


@pytest.fixture()
def upstream() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def creds() -> Credentials:
    return Credentials(api_key="key-1", secret="secret-1")


@pytest.fixture()
def make_client(upstream):
    """Build SynorbClients whose HTTP traffic lands on the `upstream` fake."""

    def build(credentials: Credentials) -> SynorbClient:
        return SynorbClient(credentials, base_url=BASE_URL, http=HttpClient(session=upstream))

    return build


@pytest.fixture()
def dispatcher(creds, make_client) -> ToolDispatcher:
    return ToolDispatcher(default_credentials=creds, client=make_client(creds), client_factory=make_client)


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_key="env-key", api_secret="env-secret", api_base_url=BASE_URL)


@pytest.fixture()
def app(settings, make_client):
    """Flask app whose upstream traffic lands on the `upstream` fake."""
    flask_app = create_app(settings, dispatcher_factory=lambda: ToolDispatcher(client_factory=make_client))
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    """A Flask test client for the app."""
    with app.test_client() as c:
        yield c
