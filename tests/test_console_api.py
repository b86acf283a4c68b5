"""Tests for the admin console HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from console_service.app import create_app, status_for
from console_service.error_mapping import AdapterError, ChainExhaustedError, ConfigurationError, ValidationError


@pytest.fixture
def client(service):
    with TestClient(create_app(service=service, enable_refresh=False)) as test_client:
        yield test_client


def post_evaluation(client, model_id, score, **extra):
    body = {"category": "translation", "model_id": model_id, "score": score, **extra}
    response = client.post("/admin/evaluations", json=body)
    assert response.status_code == 201
    return response.json()


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_status_mapping():
    assert status_for(ValidationError("bad")) == 400
    assert status_for(AdapterError("down")) == 502
    assert status_for(ChainExhaustedError("all failed")) == 502
    assert status_for(ConfigurationError("bad env")) == 500


class TestCategoryEndpoints:
    def test_add_and_remove(self, client):
        response = client.post("/admin/categories", json={"name": "Legal"})
        assert response.status_code == 201
        assert response.json() == ["translation", "grammar", "scoring", "legal"]

        assert client.delete("/admin/categories/legal").json() == ["translation", "grammar", "scoring"]

    def test_builtin_removal_rejected(self, client):
        response = client.delete("/admin/categories/translation")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestRankingEndpoints:
    """Test rankings, costs and language pairs over HTTP."""

    def test_rankings(self, client):
        post_evaluation(client, "vendor/model-a", 92, source_lang="en", target_lang="es")
        post_evaluation(client, "vendor/model-b", 95, source_lang="fr", target_lang="en")

        data = client.get("/admin/rankings/translation").json()
        assert data["sort_mode"] == "score"
        assert [m["model_id"] for m in data["models"]][:2] == ["vendor/model-b", "vendor/model-a"]

        filtered = client.get("/admin/rankings/translation", params={"language_pair": "en>es"}).json()
        scores = {m["model_id"]: m["scores"]["translation"] for m in filtered["models"]}
        assert scores["vendor/model-a"] == 92
        assert scores["vendor/model-b"] is None

        assert client.get("/admin/language-pairs").json() == ["en>es", "fr>en"]

    def test_sort_by_name(self, client):
        data = client.get("/admin/rankings/translation", params={"sort": "name"}).json()
        assert [m["model_name"] for m in data["models"]] == ["Free Model", "Model A", "Model B", "Model C"]

    def test_unknown_category(self, client):
        response = client.get("/admin/rankings/poetry")
        assert response.status_code == 400

    def test_costs(self, client):
        post_evaluation(client, "vendor/model-a", 92)
        post_evaluation(client, "vendor/model-b", 95)

        data = client.get("/admin/costs/translation", params={"threshold": 90}).json()
        assert data["score_threshold"] == 90
        assert data["comparisons"]["vendor/model-b"]["is_baseline"] is True
        assert data["comparisons"]["vendor/model-a"]["cost_multiple"] == pytest.approx(2.0)
        assert data["comparisons"]["vendor/free"]["is_free"] is True


class TestChainEndpoints:
    def test_edit_and_save(self, client):
        post_evaluation(client, "vendor/model-a", 92, model_name="Model A Turbo")
        response = client.put("/admin/chains/translation/slots/primary", json={"model_id": "vendor/model-a"})
        assert response.json()["slots"] == {"primary": "vendor/model-a"}
        client.put("/admin/chains/translation/slots/fallback2", json={"model_id": "vendor/model-b"})

        duplicate = client.put("/admin/chains/translation/slots/fallback3", json={"model_id": "vendor/model-b"})
        assert duplicate.status_code == 400
        assert client.get("/admin/chains").json() == []

        saved = client.post("/admin/chains/translation/save").json()
        assert saved["dispatch_order"] == ["vendor/model-a", "vendor/model-b"]
        assert saved["slots"]["primary"]["model_name"] == "Model A Turbo"

        chains = client.get("/admin/chains").json()
        assert [c["category"] for c in chains] == ["translation"]

    def test_save_without_primary(self, client):
        client.put("/admin/chains/grammar/slots/fallback1", json={"model_id": "vendor/model-b"})
        client.delete("/admin/chains/grammar/slots/primary")

        response = client.post("/admin/chains/grammar/save")
        assert response.status_code == 400
        assert client.get("/admin/chains").json() == []

    def test_unknown_slot(self, client):
        response = client.put("/admin/chains/translation/slots/fallback7", json={"model_id": "vendor/model-a"})
        assert response.status_code == 400


class TestHealthEndpoints:
    def test_run_check(self, client, dispatcher):
        client.put("/admin/chains/translation/slots/primary", json={"model_id": "vendor/model-a"})
        client.put("/admin/chains/translation/slots/fallback1", json={"model_id": "vendor/model-b"})
        client.post("/admin/chains/translation/save")
        dispatcher.results["vendor/model-b"] = False

        data = client.post("/admin/health/run-check").json()
        assert data["tested"] == 2
        assert data["failed"] == 1
        assert data["alerts_sent"] == 0

        status = client.get("/admin/health/status").json()
        by_model = {s["model_id"]: s for s in status["statuses"]}
        assert by_model["vendor/model-a"]["status"] == "UP"
        assert by_model["vendor/model-b"]["status"] == "DOWN"
        assert status["uptime"]["success_rate"] == 50.0

    def test_dispatcher_unavailable(self, client, dispatcher):
        dispatcher.available = False
        response = client.post("/admin/health/run-check")
        assert response.status_code == 502
        assert response.json()["error"] == "adapter_error"


class TestEvaluationAndSettingEndpoints:
    def test_evaluation_lifecycle(self, client):
        created = post_evaluation(
            client,
            "vendor/model-a",
            88,
            score_breakdown={"components": {"accuracy": 30}, "quality_total": 75, "combined_total": 88},
        )
        assert created["model_name"] == "vendor/model-a"
        assert created["score_breakdown"]["components"] == {"accuracy": 30.0}

        listed = client.get("/admin/evaluations", params={"model_id": "vendor/model-a"}).json()
        assert [e["id"] for e in listed] == [created["id"]]

        deleted = client.delete("/admin/evaluations", params={"model_id": "vendor/model-a", "category": "translation"})
        assert deleted.json() == {"deleted": 1}
        assert client.delete("/admin/evaluations/all").json() == {"deleted": 0}

    def test_invalid_error_kind(self, client):
        body = {"category": "translation", "model_id": "vendor/model-a", "score": 1, "error_kind": "bogus"}
        assert client.post("/admin/evaluations", json=body).status_code == 400

    def test_settings(self, client):
        assert client.get("/admin/settings/cost_threshold").json() == {"key": "cost_threshold", "value": None}

        response = client.put("/admin/settings/auto_refresh_interval_seconds", json={"value": 60})
        assert response.json() == {"key": "auto_refresh_interval_seconds", "value": 60}
        assert client.get("/admin/settings/auto_refresh_interval_seconds").json()["value"] == 60

        bad = client.put("/admin/settings/auto_refresh_interval_seconds", json={"value": -5})
        assert bad.status_code == 400
