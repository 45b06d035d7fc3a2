from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from synorb_common.errors import UnknownToolError
from synorb_mcp.client import SynorbClient
from synorb_mcp.models import FEED_FORMATS, FeedQuery, UpstreamResult

# Older MCP clients namespaced tool names with the connector title.
# Deprecated: accepted on input, never advertised.
LEGACY_PREFIX = "Synorb Streams:"

Handler = Callable[[SynorbClient, dict], UpstreamResult]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Mapping[str, Any]
    handler: Handler = field(repr=False, compare=False)
    aliases: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description, "inputSchema": dict(self.input_schema)}


def _object(properties: dict | None = None, required: list[str] | None = None) -> dict:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties or {},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return schema


_DATE = "(YYYY-MM-DD)"

FEED_CONTENT_SCHEMA = _object(
    {
        "feed_id": {"type": "number", "description": "Stream ID"},
        "format": {
            "type": "string",
            "enum": list(FEED_FORMATS),
            "default": "json",
            "description": "Response format",
        },
        "body_sections": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Body sections to include (only for markdown format)",
        },
        "entity_details": {
            "type": "array",
            "items": _object(
                {"entity_type": {"type": "string"}, "entity_value": {"type": "string"}},
                required=["entity_type", "entity_value"],
            ),
            "description": "List of entity filters",
        },
        "published_date_from": {"type": "string", "description": f"Start date {_DATE}"},
        "published_date_to": {"type": "string", "description": f"End date {_DATE}"},
        "created_on_from": {"type": "string", "description": f"Created on start date {_DATE}"},
        "created_on_to": {"type": "string", "description": f"Created on end date {_DATE}"},
        "page_num": {
            "type": "integer",
            "minimum": 0,
            "default": 0,
            "description": "Page number for pagination",
        },
        "page_size": {
            "type": "integer",
            "minimum": 1,
            "default": 10,
            "description": "Page size for pagination",
        },
        "is_active": {"type": "boolean", "description": "Whether to fetch only active feeds"},
        "max_stories": {
            "type": "integer",
            "minimum": 1,
            "description": "Maximum number of stories to return (capped at 100 per request)",
        },
    },
    required=["feed_id"],
)


def _tool(name: str, description: str, schema: dict, handler: Handler) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=description,
        input_schema=MappingProxyType(schema),
        handler=handler,
        aliases=(f"{LEGACY_PREFIX}{name}",),
    )


TOOLS: tuple[ToolDescriptor, ...] = (
    _tool(
        "test-connection",
        "Test if the API credentials are valid",
        _object(),
        lambda client, args: client.test_connection(),
    ),
    _tool(
        "get-synorb-stream-meta",
        "Discover all streams and metadata available",
        _object(),
        lambda client, args: client.get_meta(),
    ),
    _tool(
        "get-synorb-stream-entity-types",
        "Retrieve entity types available within a specific stream",
        _object(
            {"feedid": {"type": "string", "description": "The stream ID to fetch entity types for"}},
            required=["feedid"],
        ),
        lambda client, args: client.get_entity_types(args["feedid"]),
    ),
    _tool(
        "get-synorb-stream-entity-values",
        "Retrieve entity values for a given entity type in a stream",
        _object(
            {
                "feedid": {"type": "string", "description": "The stream ID"},
                "entity_type": {"type": "string", "description": "Optional: entity type name"},
            },
            required=["feedid"],
        ),
        lambda client, args: client.get_entity_values(args["feedid"], args.get("entity_type")),
    ),
    _tool(
        "get-synorb-stream-feed-content",
        "Fetch stories from a stream with optional filters",
        FEED_CONTENT_SCHEMA,
        lambda client, args: client.get_feed_content(FeedQuery.from_arguments(args)),
    ),
)


def _index(tools: tuple[ToolDescriptor, ...]) -> Mapping[str, ToolDescriptor]:
    out: dict[str, ToolDescriptor] = {}
    for t in tools:
        for key in (t.name, *t.aliases):
            if key in out:
                raise ValueError(f"duplicate tool name: {key}")
            out[key] = t
    return MappingProxyType(out)


_BY_NAME = _index(TOOLS)


def list_tools() -> list[ToolDescriptor]:
    return list(TOOLS)


def resolve_tool(name: str) -> ToolDescriptor:
    """Exact match on the canonical name or a deprecated alias."""
    tool = _BY_NAME.get(name) if isinstance(name, str) else None
    if tool is None:
        raise UnknownToolError(str(name))
    return tool
