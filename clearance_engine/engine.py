"""
Clearance Scoring Engine - Main Orchestrator
============================================
Runs one batch of 510(k) clearance records:
  Stage 1: Field Map → Stage 2: Weighted Scoring →
  Stage 3: Recap Cache (→ Stage 4: LLM Enrichment on misses)

The field map is resolved once per batch and the recap cache is loaded
before the first record and saved after the last one.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .config.settings import CACHE_CONFIG
from .logger import get_logger
from .models.schemas import BatchScoreResult, Category, ScoredRecord
from .models.scoring_config import ScoringConfig, create_default_scoring_config
from .stages.stage1_field_map import FieldMap, FieldMapStage
from .stages.stage2_scoring import WeightedScoringStage
from .stages.stage3_recap_cache import RecapCache
from .stages.stage4_enrichment import RecapEnricher
from .storage.cache_store import CacheStore, CsvCacheStore

logger = get_logger(__name__)

EnrichmentGate = Union[bool, Callable[[], bool], None]


def _gate_open(allow_enrichment: EnrichmentGate) -> bool:
    if callable(allow_enrichment):
        return bool(allow_enrichment())
    return bool(allow_enrichment)


class ClearanceScoringEngine:
    """
    Main engine that orchestrates the scoring stages for a batch.
    """

    def __init__(
        self,
        scoring_config: Optional[ScoringConfig] = None,
        cache_store: Optional[CacheStore] = None,
        enricher: Optional[RecapEnricher] = None,
        llm_api_key: Optional[str] = None,
    ):
        """
        Initialize the scoring engine.

        Args:
            scoring_config: Weight tables and keyword sets (defaults if not provided)
            cache_store: Persistent recap store (CSV at CACHE_CONFIG["path"] if not provided)
            enricher: Recap enricher (built from llm_api_key if not provided)
            llm_api_key: API key for the LLM provider
        """
        self.config = scoring_config or create_default_scoring_config()

        self.stage1 = FieldMapStage(self.config)
        self.stage2 = WeightedScoringStage(self.config)
        self.enricher = enricher or RecapEnricher(api_key=llm_api_key)
        self.recap_cache = RecapCache(
            store=cache_store if cache_store is not None else CsvCacheStore(CACHE_CONFIG["path"]),
            enricher=self.enricher,
        )

        self.stats = self._empty_stats()
        self._stats_lock = threading.Lock()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "batches": 0,
            "total_processed": 0,
            "record_errors": 0,
            "total_processing_time_ms": 0,
        }

    def resolve(self, header_row: Sequence[Any]) -> FieldMap:
        """Resolve a header row (raises ConfigurationError)"""
        return self.stage1.process(header_row)

    def score_record(
        self,
        record: Sequence[Any],
        field_map: FieldMap,
        allow_enrichment: EnrichmentGate = False,
        row_number: int = 0,
    ) -> ScoredRecord:
        """
        Score one record and attach its company recap.

        Args:
            record: Positional row values
            field_map: Field map for the record's batch
            allow_enrichment: Boolean or predicate gating the LLM call
            row_number: 1-based row index used when the record has no id

        Returns:
            ScoredRecord
        """
        record_id = None
        company_name = ""
        if isinstance(record, (list, tuple)):
            record_id = self.stage2.record_id(record, field_map)
            company_name = str(
                field_map.value(record, self.config.header_name("company_name"))
            ).strip()
        record_id = record_id or f"row {row_number}"

        score = self.stage2.process(record, field_map, record_id=record_id)
        recap = self.recap_cache.get_recap(
            company_name, _gate_open(allow_enrichment), record_id=record_id
        )

        with self._stats_lock:
            self.stats["total_processed"] += 1
            if score.category == Category.ERROR:
                self.stats["record_errors"] += 1

        return ScoredRecord(
            row_number=row_number,
            record_id=record_id,
            company_name=company_name,
            score=score,
            recap=recap,
        )

    def score_batch(
        self,
        header_row: Sequence[Any],
        rows: Sequence[Sequence[Any]],
        allow_enrichment: EnrichmentGate = False,
        max_workers: int = 1,
    ) -> BatchScoreResult:
        """
        Score a table of records.

        Args:
            header_row: Header cells of the table
            rows: Data rows, in table order
            allow_enrichment: Boolean or predicate gating the LLM call
            max_workers: Worker threads; 1 scores sequentially

        Returns:
            BatchScoreResult with rows in input order

        Raises:
            ConfigurationError: required columns are missing; nothing is scored
        """
        start_time = time.time()

        field_map = self.resolve(header_row)
        loaded = self.recap_cache.load()
        recaps_before = self.recap_cache.get_stats()["enrichment_calls"]

        def score_row(indexed):
            row_number, row = indexed
            return self.score_record(row, field_map, allow_enrichment, row_number)

        indexed_rows = list(enumerate(rows, start=1))
        try:
            if max_workers > 1 and len(indexed_rows) > 1:
                with ThreadPoolExecutor(max_workers=max_workers) as executor:
                    results = list(executor.map(score_row, indexed_rows))
            else:
                results = [score_row(item) for item in indexed_rows]
        finally:
            saved = self.recap_cache.save()

        counts = {category: 0 for category in Category}
        for result in results:
            counts[result.score.category] += 1

        total_time = (time.time() - start_time) * 1000
        with self._stats_lock:
            self.stats["batches"] += 1
            self.stats["total_processing_time_ms"] += total_time

        enriched = self.recap_cache.get_stats()["enrichment_calls"] - recaps_before
        logger.info(
            "Batch scored",
            processed=len(results),
            errors=counts[Category.ERROR],
            enriched=enriched,
            processing_time_ms=round(total_time, 2),
        )

        return BatchScoreResult(
            processed=len(results),
            high=counts[Category.HIGH],
            moderate=counts[Category.MODERATE],
            low=counts[Category.LOW],
            almost_none=counts[Category.ALMOST_NONE],
            errors=counts[Category.ERROR],
            enriched=enriched,
            cache_entries_loaded=loaded,
            cache_entries_saved=saved,
            processing_time_ms=round(total_time, 2),
            results=results,
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        with self._stats_lock:
            stats = self.stats.copy()
        if stats["total_processed"] > 0:
            stats["record_error_rate"] = round(
                stats["record_errors"] / stats["total_processed"] * 100, 1
            )
        stats["recap_cache"] = self.recap_cache.get_stats()
        return stats

    def reset_stats(self):
        """Reset engine statistics"""
        with self._stats_lock:
            self.stats = self._empty_stats()


# =============================================================================
# Convenience Functions
# =============================================================================

def create_engine(
    high_value_keywords: Optional[List[str]] = None,
    cache_path: Optional[str] = None,
    llm_api_key: Optional[str] = None,
) -> ClearanceScoringEngine:
    """
    Factory function to create a Clearance Scoring Engine with common settings.

    Args:
        high_value_keywords: Replaces the default high-value keyword set
        cache_path: CSV file backing the recap cache
        llm_api_key: API key for LLM provider

    Returns:
        Configured ClearanceScoringEngine instance
    """
    config = create_default_scoring_config(high_value_keywords=high_value_keywords)
    store = CsvCacheStore(cache_path) if cache_path else None
    return ClearanceScoringEngine(
        scoring_config=config, cache_store=store, llm_api_key=llm_api_key
    )
