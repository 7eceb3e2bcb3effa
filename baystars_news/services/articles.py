"""
Markdown article files with a front-matter header.
"""
import json
import re
from datetime import date
from pathlib import Path
from typing import Optional

import structlog

from baystars_news.models.domain import ArticleMetadata
from baystars_news.services.data_ingestion.base import CandidateRecord

logger = structlog.get_logger()

MAX_SLUG_LENGTH = 50


def sanitize_filename(title: str) -> str:
    """Lowercase slug of a title: word characters and hyphens only."""
    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    return slug[:MAX_SLUG_LENGTH]


class ArticleWriter:
    """Writes generated articles into the articles directory."""

    def __init__(self, directory: Path, category: str, author: str):
        self.directory = Path(directory)
        self.category = category
        self.author = author

    def write(
        self,
        record: CandidateRecord,
        content: str,
        index: int,
        today: Optional[date] = None,
    ) -> Optional[ArticleMetadata]:
        """
        Write one article and return its metadata.

        Args:
            record: The news record the article was generated from
            content: Markdown body
            index: 1-based position within this run, keeps filenames unique
            today: Publication date (defaults to today)

        Returns:
            Metadata for the index, or None if there was no content.
        """
        if not content:
            return None

        date_str = (today or date.today()).isoformat()
        filename = f"{date_str}-{index}-{sanitize_filename(record.title)}.md"
        filepath = self.directory / filename

        self.directory.mkdir(parents=True, exist_ok=True)
        filepath.write_text(self._front_matter(record, date_str) + content, encoding="utf-8")
        logger.info("Article written", filename=filename)

        return ArticleMetadata(
            title=record.title,
            date=date_str,
            filename=filename,
            filepath=str(filepath),
        )

    def _front_matter(self, record: CandidateRecord, date_str: str) -> str:
        fields = {
            "title": record.title,
            "date": date_str,
            "category": self.category,
            "source": record.source,
            "sourceUrl": record.url,
            "author": self.author,
        }
        # JSON string literals are valid YAML scalars
        lines = [f"{key}: {json.dumps(value, ensure_ascii=False)}" for key, value in fields.items()]
        return "---\n" + "\n".join(lines) + "\n---\n\n"
