"""
News ingestion services.

This module fetches candidate news items from the configured sources:
- Fetch gateway with a fixed identity header and timeout
- Declarative per-source extraction
- Concurrent aggregation with title deduplication
- Raw snapshot persistence
"""

from baystars_news.services.data_ingestion.base import (
    CandidateRecord,
    ParserKind,
    SourceConfig,
    SourceResult,
)
from baystars_news.services.data_ingestion.gateway import FetchGateway
from baystars_news.services.data_ingestion.sources import NewsSource, build_sources
from baystars_news.services.data_ingestion.snapshot import SnapshotStore
from baystars_news.services.data_ingestion.aggregator import SourceAggregator

__all__ = [
    "CandidateRecord",
    "ParserKind",
    "SourceConfig",
    "SourceResult",
    "FetchGateway",
    "NewsSource",
    "build_sources",
    "SnapshotStore",
    "SourceAggregator",
]
