"""Tests for evaluation aggregation."""

from conftest import BASE_TIME, make_record

from console_service.domain.evaluation import (
    EvaluationRecord,
    ModelCatalogEntry,
    aggregate,
    filter_by_language_pair,
    language_pair,
    unique_language_pairs,
)

CATEGORIES = ["translation", "grammar", "scoring"]


class TestAggregate:
    """Test per-model aggregation."""

    def test_mean_per_category(self):
        records = [
            make_record("m/a", 80),
            make_record("m/a", 90, minutes=1),
            make_record("m/a", 70, category="grammar"),
        ]
        [summary] = aggregate(records, CATEGORIES)

        assert summary.scores["translation"] == 85
        assert summary.scores["grammar"] == 70
        assert summary.scores["scoring"] is None
        assert summary.counts == {"translation": 2, "grammar": 1, "scoring": 0}
        assert summary.test_count == 3

    def test_catalog_only_model_listed_with_empty_scores(self, catalog_entries):
        records = [make_record("vendor/model-a", 92)]
        summaries = {s.model_id: s for s in aggregate(records, CATEGORIES, catalog_entries)}

        model_c = summaries["vendor/model-c"]
        assert model_c.scores["translation"] is None
        assert model_c.test_count == 0
        assert model_c.model_name == "Model C"
        assert model_c.last_evaluated_at is None
        assert set(summaries) == {e.model_id for e in catalog_entries}

    def test_missing_catalog_uses_records_only(self):
        [summary] = aggregate([make_record("m/a", 50)], CATEGORIES, None)

        assert summary.catalog is None
        assert summary.scores["translation"] == 50

    def test_ignores_unrequested_categories(self):
        records = [make_record("m/a", 40, category="custom"), make_record("m/b", 60)]
        summaries = aggregate(records, ["translation"])

        assert [s.model_id for s in summaries] == ["m/b"]

    def test_name_and_last_evaluated_from_newest_record(self):
        records = [
            make_record("m/a", 50, minutes=5, model_name="New Name"),
            make_record("m/a", 50, minutes=1, model_name="Old Name"),
        ]
        [summary] = aggregate(records, CATEGORIES)

        assert summary.model_name == "New Name"
        assert summary.last_evaluated_at == records[0].timestamp

    def test_links_catalog_entry(self):
        entry = ModelCatalogEntry("m/a", "Catalog A", prompt_cost=0.1, completion_cost=0.2)
        [summary] = aggregate([make_record("m/a", 10)], CATEGORIES, [entry])

        assert summary.catalog is entry

    def test_empty_input(self):
        assert aggregate([], CATEGORIES, []) == []


class TestLanguagePairs:
    """Test language pair helpers."""

    def test_pair_format(self):
        assert language_pair("en", "es") == "en>es"
        assert make_record("m/a", 1, source_lang="ja", target_lang="en").language_pair == "ja>en"

    def test_unique_pairs_sorted(self):
        records = [
            make_record("m/a", 1, source_lang="fr", target_lang="en"),
            make_record("m/a", 1, source_lang="en", target_lang="es"),
            make_record("m/b", 1, source_lang="fr", target_lang="en"),
        ]
        assert unique_language_pairs(records) == ["en>es", "fr>en"]

    def test_filter(self):
        records = [
            make_record("m/a", 1, source_lang="en", target_lang="es"),
            make_record("m/b", 1, source_lang="fr", target_lang="en"),
        ]
        assert [r.model_id for r in filter_by_language_pair(records, "fr>en")] == ["m/b"]
        assert len(filter_by_language_pair(records, "all")) == 2
        assert len(filter_by_language_pair(records, None)) == 2


class TestEvaluationRecord:
    def test_from_dict_parses_timestamp_and_breakdown(self):
        record = EvaluationRecord.from_dict(
            {
                "category": "translation",
                "model_id": "m/a",
                "score": "97.5",
                "timestamp": "2026-01-01T12:00:00Z",
                "score_breakdown": {"components": {"accuracy": 80}, "quality_total": 80, "combined_total": 95},
            }
        )

        assert record.timestamp == BASE_TIME
        assert record.score == 97.5
        assert record.model_name == "m/a"
        assert record.score_breakdown.components == {"accuracy": 80.0}
        assert record.score_breakdown.combined_total == 95
