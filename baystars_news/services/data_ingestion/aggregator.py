"""
Source Aggregator - Orchestrates news collection from all sources.

Fetches every configured source concurrently, tolerates individual
failures, merges the survivors into one deduplicated, newest-first
list and writes it out as the raw snapshot.
"""

import asyncio
from collections import Counter
from datetime import datetime, timezone
from typing import Optional
import logging

from baystars_news.services.data_ingestion.base import CandidateRecord, SourceResult
from baystars_news.services.data_ingestion.gateway import FetchGateway
from baystars_news.services.data_ingestion.snapshot import SnapshotStore
from baystars_news.services.data_ingestion.sources import (
    NewsSource,
    build_sources,
    dedup_by_title,
)

logger = logging.getLogger(__name__)


class SourceAggregator:
    """
    Aggregates candidate records from multiple sources.

    Features:
    - Concurrent fetching with a settle-all join
    - Title-based deduplication, earlier-declared source wins
    - Deterministic newest-first ordering regardless of completion order
    - Per-source statistics for reporting
    """

    def __init__(
        self,
        snapshot_store: SnapshotStore,
        sources: Optional[list[NewsSource]] = None,
        gateway: Optional[FetchGateway] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            snapshot_store: Where the merged snapshot is written
            sources: Sources in declaration order (defaults to the six built-ins)
            gateway: Fetch gateway shared by the default sources
        """
        self.snapshot_store = snapshot_store
        self._owns_gateway = gateway is None
        self.gateway = gateway or FetchGateway()

        if sources is None:
            sources = [NewsSource(config, self.gateway) for config in build_sources()]
        self.sources = sources
        self._last_stats: dict[str, int] = {}

        logger.info(f"Initialized aggregator with {len(self.sources)} sources")

    async def run(self) -> list[CandidateRecord]:
        """
        Fetch all sources, merge, and persist the snapshot.

        Every record of a run shares one ``fetched_at``, so ties fall back
        to declaration order instead of completion order.

        Returns:
            The merged records, newest first. Empty if every source failed.
        """
        fetched_at = datetime.now(timezone.utc)
        try:
            results = await self.fetch_all(fetched_at)
        finally:
            if self._owns_gateway:
                await self.gateway.aclose()

        merged = self.merge(results)
        self.snapshot_store.save(merged)

        self._last_stats = self.count_by_source(merged)
        logger.info(f"Collected {len(merged)} records in total")
        for source, count in self._last_stats.items():
            logger.info(f"  - {source}: {count}")

        return merged

    async def fetch_all(self, fetched_at: Optional[datetime] = None) -> list[SourceResult]:
        """
        Run every source concurrently and wait for all to settle.

        A source that raises contributes an error result; it never cancels
        its siblings.
        """
        fetched_at = fetched_at or datetime.now(timezone.utc)
        outcomes = await asyncio.gather(
            *(source.fetch(fetched_at) for source in self.sources),
            return_exceptions=True,
        )

        results = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, BaseException):
                result = SourceResult(source_name=source.name, error=repr(outcome))
            elif not isinstance(outcome, list):
                result = SourceResult(
                    source_name=source.name,
                    error=f"unexpected result type {type(outcome).__name__}",
                )
            else:
                result = SourceResult(source_name=source.name, records=outcome)

            if result.success:
                logger.info(str(result))
            else:
                logger.error(str(result))
            results.append(result)

        return results

    @staticmethod
    def merge(results: list[SourceResult]) -> list[CandidateRecord]:
        """
        Combine per-source results into the final ordered list.

        Failed results are dropped. The rest are concatenated in the order
        given, deduplicated by stripped title (first wins) and stably
        sorted by ``fetched_at`` descending.
        """
        combined = [
            record
            for result in results
            if result.success
            for record in result.records
        ]
        unique = dedup_by_title(combined)
        return sorted(unique, key=lambda r: r.fetched_at, reverse=True)

    @staticmethod
    def count_by_source(records: list[CandidateRecord]) -> dict[str, int]:
        return dict(Counter(r.source for r in records))

    def source_stats(self) -> dict[str, int]:
        """Per-source record counts from the last run."""
        return dict(self._last_stats)
