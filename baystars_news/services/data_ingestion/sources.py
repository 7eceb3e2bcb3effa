"""
News source definitions and the shared extraction routine.

Each of the six sources is a ``SourceConfig`` value; ``NewsSource``
applies one parameterized algorithm to all of them:

1. Fetch the page or feed through the ``FetchGateway``
2. Scan anchors (or feed items) for a link target and display text
3. Keep candidates passing the length and per-source filters
4. Resolve relative links, truncate titles, dedup, cap
"""

from datetime import datetime, timezone
from typing import Iterator, Optional
from urllib.parse import urljoin, urlparse
import logging

from bs4 import BeautifulSoup

from baystars_news.config import get_settings
from baystars_news.services.data_ingestion.base import (
    CandidateRecord,
    ParserKind,
    SourceConfig,
)
from baystars_news.services.data_ingestion.gateway import FetchGateway

logger = logging.getLogger(__name__)

# Display text must be strictly inside these bounds (code points)
MIN_TEXT_LENGTH = 5
MAX_TEXT_LENGTH = 200

TICKET_KEYWORD = "チケット"

# Record URLs must resolve to one of these
WEB_SCHEMES = ("http", "https")


def build_sources(subject: Optional[str] = None) -> list[SourceConfig]:
    """
    Return the source configurations in declaration order.

    Declaration order matters: when two sources report the same title,
    the earlier one wins during aggregation.
    """
    subject = subject or get_settings().subject

    return [
        SourceConfig(
            name="ベイスターズ公式",
            url="https://www.baystars.co.jp/news/",
            base_origin="https://www.baystars.co.jp",
            link_filter=lambda href: "/news/" in href,
        ),
        SourceConfig(
            name="Yahoo!ニュース",
            url="https://baseball.yahoo.co.jp/npb/teams/3/",
            base_origin="https://baseball.yahoo.co.jp",
            selector='a[href*="npb"]',
            text_filter=lambda text: TICKET_KEYWORD not in text,
        ),
        SourceConfig(
            name="スポーツナビ",
            url="https://sports.yahoo.co.jp/baseball/npb/teams/3/",
            base_origin="https://sports.yahoo.co.jp",
            text_filter=lambda text: TICKET_KEYWORD not in text,
        ),
        SourceConfig(
            name="Google ニュース",
            url="https://news.google.com/rss/search",
            base_origin="https://news.google.com",
            parser=ParserKind.FEED,
            selector="item",
            params={"q": subject, "hl": "ja", "gl": "JP", "ceid": "JP:ja"},
        ),
        SourceConfig(
            name="日刊スポーツ",
            url="https://www.nikkansports.com/baseball/npb/teams/3.html",
            base_origin="https://www.nikkansports.com",
            link_filter=lambda href: "baseball" in href,
        ),
        SourceConfig(
            name="毎日新聞",
            url="https://mainichi.jp/sports/articles/?category=baseball",
            base_origin="https://mainichi.jp",
            text_filter=lambda text: subject in text,
        ),
    ]


def dedup_by_title(records: list[CandidateRecord]) -> list[CandidateRecord]:
    """Drop records whose stripped title was already seen; first one wins."""
    seen: set[str] = set()
    unique = []

    for record in records:
        key = record.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)

    return unique


class NewsSource:
    """A single configured news source."""

    def __init__(
        self,
        config: SourceConfig,
        gateway: FetchGateway,
        max_records: Optional[int] = None,
        max_title_length: Optional[int] = None,
    ):
        settings = get_settings()
        self.config = config
        self.name = config.name
        self.gateway = gateway
        self.max_records = max_records or settings.max_records_per_source
        self.max_title_length = max_title_length or settings.max_title_length

    async def fetch(self, fetched_at: Optional[datetime] = None) -> list[CandidateRecord]:
        """
        Fetch and extract this source. Never raises.

        Args:
            fetched_at: Timestamp stamped on every record (defaults to now)
        """
        logger.info(f"Fetching news from {self.name}")

        try:
            body = await self.gateway.fetch(self.config.url, params=self.config.params)
            if body is None:
                logger.warning(f"No content from {self.name}, skipping")
                return []
            records = self.extract(body, fetched_at=fetched_at)
        except Exception as e:
            logger.error(f"Failed to fetch from {self.name}: {e!r}")
            return []

        logger.info(f"Fetched {len(records)} records from {self.name}")
        return records

    def extract(
        self,
        body: str,
        source_label: Optional[str] = None,
        fetched_at: Optional[datetime] = None,
    ) -> list[CandidateRecord]:
        """
        Extract candidate records from a raw response body.

        Malformed input yields an empty list plus a logged diagnostic.
        """
        label = source_label or self.name
        fetched_at = fetched_at or datetime.now(timezone.utc)

        try:
            records = [
                CandidateRecord(
                    title=text[:self.max_title_length],
                    url=self._resolve(href),
                    source=label,
                    fetched_at=fetched_at,
                )
                for href, text in self._candidates(body)
                if self._accepts(href, text)
            ]
        except Exception as e:
            logger.error(f"Failed to extract records from {label}: {e!r}")
            return []

        return dedup_by_title(records)[:self.max_records]

    def _candidates(self, body: str) -> Iterator[tuple[str, str]]:
        """Yield (link target, trimmed display text) pairs in document order."""
        if self.config.parser == ParserKind.FEED:
            soup = BeautifulSoup(body, "xml")
            for item in soup.find_all(self.config.selector):
                title = item.find("title")
                link = item.find("link")
                yield (
                    link.get_text().strip() if link else "",
                    title.get_text().strip() if title else "",
                )
        else:
            soup = BeautifulSoup(body, "html.parser")
            for anchor in soup.select(self.config.selector):
                yield anchor.get("href") or "", anchor.get_text().strip()

    def _accepts(self, href: str, text: str) -> bool:
        if not href or not text:
            return False
        if not MIN_TEXT_LENGTH < len(text) < MAX_TEXT_LENGTH:
            return False
        if urlparse(self._resolve(href)).scheme not in WEB_SCHEMES:
            return False
        if self.config.link_filter and not self.config.link_filter(href):
            return False
        if self.config.text_filter and not self.config.text_filter(text):
            return False
        return True

    def _resolve(self, href: str) -> str:
        if href.startswith(("http://", "https://")):
            return href
        return urljoin(self.config.base_origin + "/", href)
