"""
Raw snapshot persistence.

The snapshot is the complete output of one aggregation run and is
overwritten as a whole every time.
"""

from pathlib import Path
import json
import logging
import os
import tempfile

from baystars_news.errors import SnapshotNotFoundError
from baystars_news.services.data_ingestion.base import CandidateRecord

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data) -> None:
    """Write JSON to a sibling temp file, then rename it over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class SnapshotStore:
    """File-backed store for the raw candidate snapshot."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, records: list[CandidateRecord]) -> None:
        """Overwrite the snapshot. OSError propagates."""
        write_json_atomic(self.path, [r.to_dict() for r in records])
        logger.info(f"Saved {len(records)} records to {self.path}")

    def load(self) -> list[CandidateRecord]:
        if not self.path.exists():
            raise SnapshotNotFoundError(f"{self.path} not found; run the fetch stage first")

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        return [CandidateRecord.from_dict(item) for item in data]
