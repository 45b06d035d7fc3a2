"""
Smoke script for the stdio MCP server (no REST).

It performs:
 1) spawns `python -m synorb_mcp.server` over stdio
 2) lists tools
 3) calls test-connection (uses SYNORB_API_KEY / SYNORB_API_SECRET from env or .env)
 4) optionally calls get-synorb-stream-meta when SYNORB_SMOKE_META=1
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

_REPO_ROOT = Path(__file__).resolve().parents[1]


def _pretty(x: Any) -> str:
    if isinstance(x, str):
        s = x.strip()
        if s.startswith("{") or s.startswith("["):
            try:
                return json.dumps(json.loads(s), indent=2, ensure_ascii=False)
            except ValueError:
                return x
        return x
    return json.dumps(x, indent=2, ensure_ascii=False, default=str)


def _unwrap_tool_result(res: Any) -> Any:
    content = getattr(res, "content", None)
    if not content:
        return res
    c0 = content[0]
    if isinstance(c0, dict) and "text" in c0:
        return c0["text"]
    return getattr(c0, "text", c0)


async def smoke() -> bool:
    from mcp import ClientSession
    from mcp.client.stdio import StdioServerParameters, stdio_client

    python_cmd = os.getenv("MCP_PYTHON") or sys.executable
    env = dict(os.environ)
    env.pop("HTTP_MODE", None)
    src = str(_REPO_ROOT / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)

    print(f"[smoke] Repo root: {_REPO_ROOT}")
    print(f"[smoke] Python: {python_cmd}")

    server = StdioServerParameters(command=python_cmd, args=["-m", "synorb_mcp.server"], env=env)

    ok = True
    async with stdio_client(server) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            tools = await session.list_tools()
            print("\n[smoke] TOOLS:")
            for t in tools.tools:
                print(f" - {t.name}")

            out = _unwrap_tool_result(await session.call_tool("test-connection", {}))
            print("\n[smoke] CALL test-connection:")
            print(_pretty(out))
            if isinstance(out, str) and out.startswith("Error:"):
                ok = False

            if os.getenv("SYNORB_SMOKE_META", "0").lower() in {"1", "true", "yes"}:
                out = _unwrap_tool_result(await session.call_tool("get-synorb-stream-meta", {}))
                print("\n[smoke] CALL get-synorb-stream-meta:")
                print(_pretty(out))

    return ok


def main() -> int:
    ok = asyncio.run(smoke())
    print("\n[smoke] OK" if ok else "\n[smoke] FAILED")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
