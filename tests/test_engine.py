"""
Tests for engine.py - batch orchestration.
"""

import pytest

from clearance_engine.config.settings import CACHE_CONFIG, OUTPUT_COLUMNS
from clearance_engine.engine import ClearanceScoringEngine, create_engine
from clearance_engine.errors import ConfigurationError, EnrichmentTimeoutError
from clearance_engine.models.schemas import Category
from clearance_engine.storage.cache_store import CsvCacheStore, InMemoryCacheStore

from conftest import EXAMPLE_RECORD, FakeEnricher


class CountingStore(InMemoryCacheStore):
    def __init__(self, rows=()):
        super().__init__(rows)
        self.load_count = 0

    def load_all(self):
        self.load_count += 1
        return super().load_all()


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def engine(sensor_config, store, fake_enricher):
    return ClearanceScoringEngine(
        scoring_config=sensor_config, cache_store=store, enricher=fake_enricher
    )


def rows_with_applicant(*applicants):
    rows = []
    for i, applicant in enumerate(applicants):
        row = list(EXAMPLE_RECORD) + [applicant]
        row[0] = f"K10000{i}"
        rows.append(row)
    return rows


class TestScoreBatch:
    """End-to-end batches."""

    def test_results_in_input_order(self, engine, applicant_header):
        rows = rows_with_applicant("Acme", "Beta", "Gamma")
        result = engine.score_batch(applicant_header, rows)

        assert result.processed == 3
        assert [r.record_id for r in result.results] == ["K100000", "K100001", "K100002"]
        assert [r.row_number for r in result.results] == [1, 2, 3]
        assert result.high == 3

    def test_output_rows_complete(self, engine, applicant_header):
        result = engine.score_batch(applicant_header, rows_with_applicant("Acme"))

        row = result.output_rows()[0]
        assert len(row) == len(OUTPUT_COLUMNS)
        output = result.results[0].to_output_dict()
        assert output["KW_Wt"] == 0.85
        assert output["Synergy_Calc"] == 0.15
        assert output["Category"] == "High"
        assert output["Score_Percent"] == pytest.approx(output["Final_Score"] * 100)
        assert output["CompanyRecap"] == CACHE_CONFIG["default_recap"]

    def test_missing_columns_fatal_before_cache_load(self, engine, store):
        with pytest.raises(ConfigurationError) as exc:
            engine.score_batch(["K_Number", "AC"], [["K1", "OR"]])

        assert "ProcTimeDays" in exc.value.missing_fields
        assert store.load_count == 0
        assert store.save_count == 0

    def test_cache_loaded_and_saved_once(self, engine, store, applicant_header):
        result = engine.score_batch(applicant_header, rows_with_applicant("Acme", "acme", "Beta"))

        assert store.load_count == 1
        assert store.save_count == 1
        assert sorted(r[0] for r in store.rows) == ["Acme", "Beta"]
        assert result.cache_entries_saved == 2

    def test_enrichment_gate_predicate(self, engine, fake_enricher, applicant_header):
        calls = []

        def gate():
            calls.append(1)
            return True

        result = engine.score_batch(applicant_header, rows_with_applicant("Acme", "Beta"),
                                    allow_enrichment=gate)

        assert calls
        assert fake_enricher.calls == ["Acme", "Beta"]
        assert result.enriched == 2
        assert result.results[0].recap == fake_enricher.text

    def test_recaps_reused_across_batches(self, engine, fake_enricher, applicant_header):
        engine.score_batch(applicant_header, rows_with_applicant("Acme"), allow_enrichment=True)
        second = engine.score_batch(applicant_header, rows_with_applicant("ACME"),
                                    allow_enrichment=True)

        assert fake_enricher.calls == ["Acme"]
        assert second.enriched == 0

    def test_enrichment_failure_logged_with_record_id(self, sensor_config, applicant_header, caplog):
        engine = ClearanceScoringEngine(
            scoring_config=sensor_config,
            cache_store=InMemoryCacheStore(),
            enricher=FakeEnricher(error=EnrichmentTimeoutError("timed out")),
        )

        engine.score_batch(applicant_header, rows_with_applicant("Acme"), allow_enrichment=True)

        assert '"record_id": "K100000"' in caplog.text
        assert '"company_name": "Acme"' in caplog.text

    def test_bad_record_contained(self, engine, applicant_header):
        rows = rows_with_applicant("Acme") + [None] + rows_with_applicant("Beta")
        result = engine.score_batch(applicant_header, rows)

        assert result.processed == 3
        assert result.errors == 1
        assert result.results[1].score.category == Category.ERROR
        assert result.results[1].record_id == "row 2"
        assert result.results[2].score.category == Category.HIGH

    def test_without_company_column(self, engine, example_header):
        result = engine.score_batch(example_header, [list(EXAMPLE_RECORD)])
        assert result.results[0].recap == CACHE_CONFIG["empty_name_recap"]

    def test_parallel_workers_preserve_order(self, sensor_config, applicant_header):
        enricher = FakeEnricher(delay=0.01)
        engine = ClearanceScoringEngine(
            scoring_config=sensor_config, cache_store=InMemoryCacheStore(), enricher=enricher
        )
        names = ["Acme", "Beta", "Acme", "Gamma", "Beta", "Delta"]
        result = engine.score_batch(applicant_header, rows_with_applicant(*names),
                                    allow_enrichment=True, max_workers=4)

        assert [r.company_name for r in result.results] == names
        assert sorted(enricher.calls) == ["Acme", "Beta", "Delta", "Gamma"]

    def test_empty_batch_does_not_wipe_store(self, sensor_config, applicant_header):
        store = InMemoryCacheStore([["Acme", "kept", ""]])
        engine = ClearanceScoringEngine(scoring_config=sensor_config, cache_store=store,
                                        enricher=FakeEnricher())
        engine.score_batch(applicant_header, [])

        # Loaded entries are re-saved, never dropped
        assert [r[:2] for r in store.rows] == [["Acme", "kept"]]


class TestStats:
    """Engine statistics."""

    def test_counts_and_reset(self, engine, applicant_header):
        engine.score_batch(applicant_header, rows_with_applicant("Acme") + [None])

        stats = engine.get_stats()
        assert stats["batches"] == 1
        assert stats["total_processed"] == 2
        assert stats["record_errors"] == 1
        assert stats["record_error_rate"] == 50.0
        assert stats["recap_cache"]["entries"] == 1

        engine.reset_stats()
        assert engine.get_stats()["total_processed"] == 0

    def test_counts_exact_with_parallel_workers(self, engine, applicant_header):
        rows = rows_with_applicant(*[f"Company {i % 7}" for i in range(200)]) + [None] * 50

        engine.score_batch(applicant_header, rows, max_workers=8)

        stats = engine.get_stats()
        assert stats["total_processed"] == 250
        assert stats["record_errors"] == 50


class TestFactory:
    """create_engine convenience function."""

    def test_create_engine_with_csv_cache(self, tmp_path, applicant_header):
        path = tmp_path / "recaps.csv"
        engine = create_engine(high_value_keywords=["sensor"], cache_path=str(path))

        assert isinstance(engine.recap_cache.store, CsvCacheStore)
        engine.score_batch(applicant_header, rows_with_applicant("Acme"))
        assert path.exists()
