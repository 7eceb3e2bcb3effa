"""
Persistent article index.

The index is a newest-first, size-bounded list of generated article
metadata that survives across pipeline runs. It is always rebuilt and
rewritten as a whole; a single writer is assumed.
"""
import json
from pathlib import Path
from typing import Callable, Optional

import structlog

from baystars_news.config import get_settings
from baystars_news.models.domain import ArticleMetadata
from baystars_news.services.data_ingestion.snapshot import write_json_atomic

logger = structlog.get_logger()

IndexLoader = Callable[[], list[dict]]
IndexStorer = Callable[[list[dict]], None]


class JsonIndexStore:
    """JSON file backing for the index."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[dict]:
        """Read the stored index. Missing or corrupt files read as empty."""
        if not self.path.exists():
            return []

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Index unreadable, starting empty", path=str(self.path), error=str(e))
            return []

        if not isinstance(data, list):
            logger.warning(
                "Index is not a list, starting empty",
                path=str(self.path),
                found=type(data).__name__,
            )
            return []

        return data

    def store(self, items: list[dict]) -> None:
        write_json_atomic(self.path, items)


class IndexAccumulator:
    """
    Folds newly generated article metadata into the persistent index.

    Storage is injected as a load/store pair so the merge logic has no
    file system dependency.
    """

    def __init__(
        self,
        load: IndexLoader,
        store: IndexStorer,
        max_items: Optional[int] = None,
    ):
        self._load = load
        self._store = store
        self.max_items = max_items or get_settings().index_max_items

    @classmethod
    def for_path(cls, path: Path, max_items: Optional[int] = None) -> "IndexAccumulator":
        store = JsonIndexStore(path)
        return cls(store.load, store.store, max_items=max_items)

    def accumulate(self, new_batch: list[ArticleMetadata]) -> list[dict]:
        """
        Prepend a batch to the stored index and truncate to the cap.

        Args:
            new_batch: Newly generated articles, in the order they were produced

        Returns:
            The index as written.
        """
        existing = self._load()
        if not new_batch:
            logger.info("No new articles, index left unchanged", total=len(existing))
            return existing

        updated = merge_index(
            [item.model_dump() for item in new_batch],
            existing,
            self.max_items,
        )
        self._store(updated)

        logger.info(
            "Article index updated",
            added=len(new_batch),
            total=len(updated),
        )
        return updated


def merge_index(new_items: list[dict], existing: list[dict], max_items: int) -> list[dict]:
    """New items first, then the existing index, keeping at most ``max_items``."""
    return (list(new_items) + list(existing))[:max_items]
