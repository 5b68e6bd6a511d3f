"""
Persistent stores for the recap cache.

A store is read wholesale at batch start and overwritten wholesale at
batch end. Rows are (CompanyName, RecapText, LastUpdated).
"""

import csv
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Sequence, Union

from ..config.settings import CACHE_COLUMNS
from ..errors import CacheIOError
from ..models.schemas import CacheEntry


class CacheStore(ABC):
    """Repository interface over the persistent recap table"""

    @abstractmethod
    def load_all(self) -> List[List[str]]:
        """Return every persisted row (header excluded); [] when empty"""

    @abstractmethod
    def save_all(self, entries: Sequence[CacheEntry]) -> None:
        """Replace all persisted rows with the given entries"""


def _entry_row(entry: CacheEntry) -> List[str]:
    stamp = entry.last_updated.isoformat() if entry.last_updated else ""
    return [entry.company_name, entry.recap_text, stamp]


class InMemoryCacheStore(CacheStore):
    """Store kept in a list of rows; used for tests and embedding"""

    def __init__(self, rows: Sequence[Sequence[str]] = ()):
        self.rows: List[List[str]] = [list(r) for r in rows]
        self.save_count = 0

    def load_all(self) -> List[List[str]]:
        return [list(r) for r in self.rows]

    def save_all(self, entries: Sequence[CacheEntry]) -> None:
        self.rows = [_entry_row(e) for e in entries]
        self.save_count += 1


class CsvCacheStore(CacheStore):
    """Three-column CSV file with a header row"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load_all(self) -> List[List[str]]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8-sig", newline="") as f:
                rows = list(csv.reader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise CacheIOError(f"Failed to read {self.path}: {e}") from e

        if rows and [c.strip() for c in rows[0][:3]] == CACHE_COLUMNS:
            rows = rows[1:]
        return rows

    def save_all(self, entries: Sequence[CacheEntry]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                writer = csv.writer(f)
                writer.writerow(CACHE_COLUMNS)
                for entry in entries:
                    writer.writerow(_entry_row(entry))
            os.replace(tmp_name, self.path)
        except (OSError, csv.Error) as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CacheIOError(f"Failed to write {self.path}: {e}") from e


def parse_timestamp(value: str):
    """Parse a LastUpdated cell; None when blank or unreadable"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None
