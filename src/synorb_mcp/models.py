from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

FEED_FORMATS = ("json", "newsml", "markdown", "html")
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class Credentials:
    api_key: str
    secret: str

    def __repr__(self) -> str:
        # keep secrets out of logs and tracebacks
        return "Credentials(api_key='***', secret='***')"

    @property
    def complete(self) -> bool:
        return bool(self.api_key and self.secret)


@dataclass(frozen=True)
class UpstreamResult:
    """Tagged outcome of a single upstream call.

    ``ok`` selects the variant: on success ``data`` holds the decoded body,
    on failure ``error`` holds a human-readable message.
    """

    ok: bool
    data: Any = None
    error: str | None = None
    status: int | None = None

    @classmethod
    def success(cls, data: Any, *, status: int | None = None) -> "UpstreamResult":
        return cls(ok=True, data=data, status=status)

    @classmethod
    def failure(cls, error: str, *, status: int | None = None) -> "UpstreamResult":
        return cls(ok=False, error=error, status=status)

    def to_dict(self) -> dict:
        if self.ok:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


@dataclass(frozen=True)
class EntityFilter:
    entity_type: str
    entity_value: str

    def to_dict(self) -> dict:
        return {"entity_type": self.entity_type, "entity_value": self.entity_value}


@dataclass(frozen=True)
class FeedQuery:
    feed_id: int | float
    format: str = "json"
    body_sections: tuple[str, ...] = ()
    entity_details: tuple[EntityFilter, ...] = ()
    published_date_from: str | None = None
    published_date_to: str | None = None
    created_on_from: str | None = None
    created_on_to: str | None = None
    page_num: int = 0
    page_size: int = 10
    is_active: bool | None = None
    max_stories: int | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> "FeedQuery":
        """Build a query from already-validated tool arguments."""
        return cls(
            feed_id=args["feed_id"],
            format=args.get("format") or "json",
            body_sections=tuple(args.get("body_sections") or ()),
            entity_details=tuple(
                EntityFilter(entity_type=e["entity_type"], entity_value=e["entity_value"])
                for e in (args.get("entity_details") or ())
            ),
            published_date_from=args.get("published_date_from"),
            published_date_to=args.get("published_date_to"),
            created_on_from=args.get("created_on_from"),
            created_on_to=args.get("created_on_to"),
            page_num=args.get("page_num") or 0,
            page_size=args.get("page_size") or 10,
            is_active=args.get("is_active"),
            max_stories=args.get("max_stories"),
        )

    @property
    def effective_page_size(self) -> int:
        if self.max_stories:
            return min(int(self.max_stories), MAX_PAGE_SIZE)
        return int(self.page_size)
