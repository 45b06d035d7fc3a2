from __future__ import annotations

import asyncio
import logging

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from synorb_config.settings import SERVICE_NAME, Settings, init_runtime
from synorb_mcp import __version__
from synorb_mcp.client import client_factory
from synorb_mcp.dispatcher import ToolDispatcher
from synorb_mcp.registry import list_tools


logger = logging.getLogger(__name__)


def build_dispatcher(settings: Settings) -> ToolDispatcher:
    """Build the dispatcher with one shared client made from process-wide credentials.

    Without credentials no client is built; every call then reports an auth error.
    """
    factory = client_factory(settings)
    creds = settings.default_credentials()
    if creds is None:
        logger.warning("SYNORB_API_KEY and SYNORB_API_SECRET not set; tool calls will fail with an auth error")
    return ToolDispatcher(
        default_credentials=creds,
        client=factory(creds) if creds else None,
        client_factory=factory,
    )


def build_server(dispatcher: ToolDispatcher) -> Server:
    server = Server(SERVICE_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=dict(t.input_schema))
            for t in list_tools()
        ]

    # ToolDispatcher owns validation and reports failures inside the envelope.
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: dict | None) -> types.CallToolResult:
        envelope = await asyncio.to_thread(dispatcher.dispatch, name, arguments or {})
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=block["text"]) for block in envelope["content"]],
            isError=envelope.get("isError", False),
        )

    return server


async def run_stdio(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Synorb MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    # Console scripts call main() directly, so runtime init (dotenv + logging) happens here.
    init_runtime()
    settings = Settings.from_env()

    if settings.http_mode:
        from synorb_api.app import serve

        serve(settings)
        return

    asyncio.run(run_stdio(build_server(build_dispatcher(settings))))


if __name__ == "__main__":
    main()
