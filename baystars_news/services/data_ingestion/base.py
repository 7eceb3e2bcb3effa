"""
Base classes and data models for news ingestion.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional


class ParserKind(str, Enum):
    """How a source's response body is parsed."""
    HTML = "html"
    FEED = "feed"


# Predicates applied to a candidate's link target / display text
LinkFilter = Callable[[str], bool]
TextFilter = Callable[[str], bool]


@dataclass(frozen=True)
class SourceConfig:
    """
    Declarative configuration for a single news source.

    One shared extraction routine consumes these; sources differ only
    in where they live and which candidates they accept.
    """
    name: str  # Label stamped on every record as ``source``
    url: str
    base_origin: str
    parser: ParserKind = ParserKind.HTML
    selector: str = "a"
    params: Optional[dict[str, str]] = None
    link_filter: Optional[LinkFilter] = None
    text_filter: Optional[TextFilter] = None


@dataclass(frozen=True)
class CandidateRecord:
    """
    A single extracted news item, scoped to one pipeline run.

    The stripped title is the dedup key across and within sources.
    """
    title: str
    url: str
    source: str
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dedup_key(self) -> str:
        return self.title.strip()

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "fetchedAt": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CandidateRecord":
        fetched_at = datetime.fromisoformat(data["fetchedAt"].replace("Z", "+00:00"))
        return cls(
            title=data["title"],
            url=data["url"],
            source=data["source"],
            fetched_at=fetched_at,
        )


@dataclass
class SourceResult:
    """Outcome of one source's fetch+extract unit."""
    source_name: str
    records: list[CandidateRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        detail = f"records={len(self.records)}"
        if self.error:
            detail += f", error={self.error}"
        return f"{status} {self.source_name}: {detail}"
