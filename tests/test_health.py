import pytest
from prometheus_client import REGISTRY
from pydantic import ValidationError

from lecture_summary.main import create_app
from lecture_summary.utils.config import Settings
from lecture_summary.utils.errors import PersistenceError


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readyz_when_database_reachable(client):
    response = client.get("/readyz")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_readyz_when_database_down(client, store):
    store.error = PersistenceError("database is down")
    response = client.get("/readyz")
    assert response.status_code == 500
    assert response.json() == {"status": "not ready"}


def test_metrics_exposes_job_counters(client, wait_for_jobs):
    labels = {"trigger": "http", "outcome": "succeeded"}
    before = REGISTRY.get_sample_value("summary_jobs_total", labels) or 0.0

    client.post("/lectures/M1/summary", json={"transcription": "text"})
    wait_for_jobs()

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "summary_jobs_total" in response.text
    assert REGISTRY.get_sample_value("summary_jobs_total", labels) == before + 1
    assert "summary_job_queue_depth" in response.text


def test_api_docs_are_served(client):
    response = client.get("/docs/summary/openapi.json")
    assert response.status_code == 200
    assert "/lectures/{lecture_id}/summary" in response.json()["paths"]


def test_missing_token_fails_startup(monkeypatch):
    monkeypatch.delenv("HUGGINGFACE_TOKEN", raising=False)
    with pytest.raises(ValidationError):
        create_app(Settings(_env_file=None))


def test_settings_defaults(monkeypatch):
    monkeypatch.setenv("HUGGINGFACE_TOKEN", "hf_abc")
    settings = Settings(_env_file=None)
    assert settings.port == 3000
    assert settings.huggingface_model == "openai/gpt-oss-120b"
    assert settings.huggingface_api_url == "https://router.huggingface.co/v1/chat/completions"
    assert settings.nats_url == ""
    assert settings.shutdown_grace_period == 10
