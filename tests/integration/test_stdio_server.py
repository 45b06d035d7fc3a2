from __future__ import annotations

import pytest

from tests.helpers.mcp_runtime import (
    assert_tools_present,
    build_test_env,
    call_tool_text,
    list_tool_names,
    mcp_stdio_session,
)


@pytest.fixture
def anyio_backend():
    """Run on asyncio; anyio keeps fixture setup and teardown in one task."""
    return "asyncio"


@pytest.fixture
async def stdio_session(tmp_path):
    """Initialized session for `python -m synorb_mcp.server` with no credentials configured."""
    env = build_test_env(tmp_path)
    async with mcp_stdio_session("synorb_mcp.server", env=env) as session:
        yield session


@pytest.mark.integration
@pytest.mark.anyio
async def test_stdio_server_lists_canonical_tools(stdio_session):
    await assert_tools_present(stdio_session, ["test-connection", "get-synorb-stream-feed-content"])
    names = await list_tool_names(stdio_session)
    assert not [n for n in names if n.startswith("Synorb Streams:")]


@pytest.mark.integration
@pytest.mark.anyio
async def test_stdio_server_without_credentials_reports_auth_error(stdio_session):
    text = await call_tool_text(stdio_session, "test-connection", {})
    assert text == "Error: API credentials not configured"

    # the process survives and keeps answering
    text = await call_tool_text(stdio_session, "Synorb Streams:get-synorb-stream-meta", {})
    assert text == "Error: API credentials not configured"
