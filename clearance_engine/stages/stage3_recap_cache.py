"""
Stage 3: Company Recap Cache
============================
Memoizes company recaps within a run and across runs.

- In-memory table keyed by lower-cased, trimmed company name
- Persistent store loaded once at batch start, saved once at batch end
- Misses may call the enrichment stage; hits never do
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config.settings import CACHE_CONFIG
from ..errors import CacheIOError, EnrichmentError
from ..logger import get_logger
from ..models.schemas import CacheEntry
from ..storage.cache_store import CacheStore, InMemoryCacheStore, parse_timestamp
from .stage4_enrichment import RecapEnricher

logger = get_logger(__name__)


def _normalize_name(company_name: Any) -> str:
    if company_name is None:
        return ""
    return str(company_name).strip()


class RecapCache:
    """
    Stage 3: Two-tier company recap cache with optional LLM enrichment.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        enricher: Optional[RecapEnricher] = None,
        default_recap: Optional[str] = None,
        empty_name_recap: Optional[str] = None,
        max_recap_chars: Optional[int] = None,
    ):
        self.store = store if store is not None else InMemoryCacheStore()
        self.enricher = enricher
        self.default_recap = default_recap or CACHE_CONFIG["default_recap"]
        self.empty_name_recap = empty_name_recap or CACHE_CONFIG["empty_name_recap"]
        self.max_recap_chars = max_recap_chars or CACHE_CONFIG["max_recap_chars"]

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        # One lock per company being resolved, so a name is enriched once
        self._inflight: Dict[str, threading.Lock] = {}

        self.stats = {
            "hits": 0,
            "misses": 0,
            "enrichment_calls": 0,
            "enrichment_failures": 0,
        }

    def __len__(self) -> int:
        return len(self._entries)

    # =========================================================================
    # Batch boundary operations
    # =========================================================================

    def load(self) -> int:
        """
        Populate the in-memory table from the persistent store.

        Blank or malformed rows are skipped. Entries already in memory are
        kept. A store that cannot be read leaves the table as it was.

        Returns:
            Number of entries loaded
        """
        try:
            rows = self.store.load_all()
        except (CacheIOError, OSError) as e:
            logger.warning("Recap cache could not be loaded; starting empty", error=str(e))
            return 0

        loaded = 0
        skipped = 0
        with self._lock:
            for row in rows or []:
                if isinstance(row, (str, bytes)) or not row or len(row) < 2:
                    skipped += 1
                    continue
                name = _normalize_name(row[0])
                if not name:
                    skipped += 1
                    continue
                key = name.lower()
                if key in self._entries:
                    continue
                self._entries[key] = CacheEntry(
                    company_name=name,
                    recap_text="" if row[1] is None else str(row[1]),
                    last_updated=parse_timestamp(str(row[2])) if len(row) > 2 and row[2] else None,
                )
                loaded += 1

        if skipped:
            logger.debug("Skipped malformed recap cache rows", skipped=skipped)
        logger.info("Recap cache loaded", entries=loaded)
        return loaded

    def save(self) -> int:
        """
        Persist the whole in-memory table, replacing the store's contents.

        Every entry is stamped with the save time. Does nothing when the
        table is empty so an empty run cannot wipe a populated store.

        Returns:
            Number of entries written (0 on no-op or failure)
        """
        with self._lock:
            if not self._entries:
                logger.debug("Recap cache empty; skipping save")
                return 0
            now = datetime.now(timezone.utc)
            for key, entry in self._entries.items():
                self._entries[key] = entry.model_copy(update={"last_updated": now})
            entries = list(self._entries.values())

        try:
            self.store.save_all(entries)
        except (CacheIOError, OSError) as e:
            logger.warning(
                "Recap cache could not be saved; persisted recaps are stale",
                error=str(e),
                entries=len(entries),
            )
            return 0

        logger.info("Recap cache saved", entries=len(entries))
        return len(entries)

    # =========================================================================
    # Per-record operations
    # =========================================================================

    def get(self, company_name: Any) -> Optional[str]:
        """Cached recap for a company, or None"""
        name = _normalize_name(company_name)
        if not name:
            return None
        with self._lock:
            entry = self._entries.get(name.lower())
        return entry.recap_text if entry else None

    def put(self, company_name: Any, recap_text: str) -> None:
        """Store a recap under the normalized company name"""
        name = _normalize_name(company_name)
        if not name:
            return
        with self._lock:
            self._entries[name.lower()] = CacheEntry(
                company_name=name,
                recap_text=recap_text,
                last_updated=datetime.now(timezone.utc),
            )

    def get_recap(
        self,
        company_name: Any,
        allow_enrichment: bool = False,
        record_id: Optional[str] = None,
    ) -> str:
        """
        Recap for a company. Never raises.

        Args:
            company_name: Applicant name from the record
            allow_enrichment: Whether a miss may call the enrichment service
            record_id: Identifier of the record asking, for failure logs

        Returns:
            Cached text, freshly generated text, or a default sentinel
        """
        name = _normalize_name(company_name)
        if not name:
            return self.empty_name_recap
        key = name.lower()

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self.stats["hits"] += 1
                return entry.recap_text
            key_lock = self._inflight.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None:
                    self.stats["hits"] += 1
                    return entry.recap_text
                self.stats["misses"] += 1

            result = self._resolve(name, allow_enrichment, record_id)

            with self._lock:
                self._entries[key] = CacheEntry(
                    company_name=name,
                    recap_text=result,
                    last_updated=datetime.now(timezone.utc),
                )
                self._inflight.pop(key, None)

        return result

    def _resolve(
        self, name: str, allow_enrichment: bool, record_id: Optional[str] = None
    ) -> str:
        """Recap for a cache miss"""
        result = self.default_recap
        if not allow_enrichment:
            return result

        if self.enricher is None:
            logger.debug(
                "Enrichment allowed but no enricher configured",
                record_id=record_id,
                company_name=name,
            )
            return result

        with self._lock:
            self.stats["enrichment_calls"] += 1
        try:
            text = self.enricher.generate(name)
            result = text[: self.max_recap_chars].rstrip()
        except EnrichmentError as e:
            with self._lock:
                self.stats["enrichment_failures"] += 1
            logger.warning(
                "Enrichment failed; using default recap",
                record_id=record_id,
                company_name=name,
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
        except Exception as e:
            with self._lock:
                self.stats["enrichment_failures"] += 1
            logger.error(
                "Unexpected enrichment failure; using default recap",
                record_id=record_id,
                company_name=name,
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
        return result or self.default_recap

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = self.stats.copy()
            stats["entries"] = len(self._entries)
        return stats
