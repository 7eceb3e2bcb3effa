"""
Batch jobs for the news pipeline.

A full run has two stages:
1. Fetch: collect records from every source and write the raw snapshot
2. Generate: turn each snapshot record into a Markdown article, then
   fold the new article metadata into the persistent index
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from baystars_news.config import Settings, get_settings
from baystars_news.models.domain import ArticleMetadata
from baystars_news.services.articles import ArticleWriter
from baystars_news.services.data_ingestion import (
    CandidateRecord,
    SnapshotStore,
    SourceAggregator,
)
from baystars_news.services.generation import (
    ContentGenerator,
    LLMContentGenerator,
    template_article,
)
from baystars_news.services.index import IndexAccumulator

logger = structlog.get_logger()


class ArticleGenerationJob:
    """
    Generates articles for every record in the raw snapshot.

    Generator calls run one at a time with a fixed pause between them;
    a failed call falls back to the template article rather than
    skipping the record.
    """

    def __init__(
        self,
        snapshot_store: SnapshotStore,
        writer: ArticleWriter,
        accumulator: IndexAccumulator,
        generator: ContentGenerator,
        subject: str,
        delay_seconds: float = 0.5,
    ):
        self.snapshot_store = snapshot_store
        self.writer = writer
        self.accumulator = accumulator
        self.generator = generator
        self.subject = subject
        self.delay_seconds = delay_seconds

    async def run(self) -> list[ArticleMetadata]:
        """Execute the generation stage. Raises SnapshotNotFoundError if fetch never ran."""
        records = self.snapshot_store.load()

        if not records:
            logger.warning("Snapshot is empty, nothing to generate")
            return []

        logger.info("Starting article generation", records=len(records))
        generated: list[ArticleMetadata] = []

        for i, record in enumerate(records, start=1):
            logger.info("Generating article", position=f"{i}/{len(records)}", title=record.title[:60])

            metadata = await self._generate_one(record, i)
            if metadata:
                generated.append(metadata)

            if i < len(records):
                await asyncio.sleep(self.delay_seconds)

        self.accumulator.accumulate(generated)
        logger.info("Article generation complete", generated=len(generated))
        return generated

    async def _generate_one(self, record: CandidateRecord, index: int) -> Optional[ArticleMetadata]:
        content = await self.generator(record)
        if not content:
            logger.warning("Generator returned nothing, using template", title=record.title[:60])
            content = template_article(record, self.subject)

        return self.writer.write(record, content, index)


def create_aggregator(settings: Optional[Settings] = None) -> SourceAggregator:
    settings = settings or get_settings()
    return SourceAggregator(SnapshotStore(settings.snapshot_path))


def create_generation_job(
    settings: Optional[Settings] = None,
    generator: Optional[ContentGenerator] = None,
) -> ArticleGenerationJob:
    settings = settings or get_settings()
    return ArticleGenerationJob(
        snapshot_store=SnapshotStore(settings.snapshot_path),
        writer=ArticleWriter(settings.data_dir, settings.article_category, settings.article_author),
        accumulator=IndexAccumulator.for_path(settings.index_path, settings.index_max_items),
        generator=generator or LLMContentGenerator(settings),
        subject=settings.subject,
        delay_seconds=settings.generation_delay_seconds,
    )


async def run_fetch(settings: Optional[Settings] = None) -> list[CandidateRecord]:
    start_time = datetime.now(timezone.utc)
    records = await create_aggregator(settings).run()
    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info("Fetch stage complete", records=len(records), duration_seconds=round(duration, 1))
    return records


async def run_generate(settings: Optional[Settings] = None) -> list[ArticleMetadata]:
    return await create_generation_job(settings).run()


async def run_pipeline(settings: Optional[Settings] = None) -> list[ArticleMetadata]:
    """Fetch, then generate."""
    await run_fetch(settings)
    return await run_generate(settings)
