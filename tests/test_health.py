from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from lms_quiz.api.routes import health as health_routes
from lms_quiz.main import app


def _check(result: dict[str, object]):
    async def _run() -> dict[str, object]:
        return result

    return _run


OK = {"status": "ok"}


def _patch_checks(monkeypatch: pytest.MonkeyPatch, **results: dict[str, object]) -> None:
    for name in ("database", "redis", "celery_worker"):
        monkeypatch.setattr(health_routes, f"_check_{name}", _check(results.get(name, OK)))


def test_live_needs_no_dependencies() -> None:
    response = TestClient(app).get("/live")

    assert response.status_code == 200
    assert response.json() == {"status": "live"}


def test_health_reports_every_dependency(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_checks(monkeypatch, celery_worker={"status": "ok", "workers": 2})

    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "checks": {"database": OK, "redis": OK, "celery": {"status": "ok", "workers": 2}},
    }


def test_health_degrades_when_worker_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_checks(monkeypatch, celery_worker={"status": "failed", "error": "celery_no_workers"})

    response = TestClient(app).get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["checks"]["celery"]["error"] == "celery_no_workers"


def test_ready_ignores_celery_but_not_database(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_checks(monkeypatch, celery_worker={"status": "failed", "error": "celery_unavailable"})
    client = TestClient(app)

    ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json() == {"status": "ready", "checks": {"database": OK, "redis": OK}}

    _patch_checks(monkeypatch, database={"status": "failed", "error": "database_unavailable"})
    not_ready = client.get("/ready")
    assert not_ready.status_code == 503
    assert not_ready.json()["status"] == "not_ready"


@pytest.mark.asyncio
async def test_database_failure_hides_connection_details(monkeypatch: pytest.MonkeyPatch) -> None:
    class _UnreachableSession:
        async def __aenter__(self) -> object:
            raise OSError("could not connect to postgresql://lms:secret@db/lms_quiz")

        async def __aexit__(self, exc_type, exc, tb) -> bool:  # noqa: ANN001
            return False

    monkeypatch.setattr(health_routes, "SessionLocal", lambda: _UnreachableSession())

    assert await health_routes._check_database() == {"status": "failed", "error": "database_unavailable"}


def test_celery_failure_hides_broker_details(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Inspector:
        def ping(self) -> dict[str, object]:
            raise ConnectionError("redis://:secret@broker:6379/0 refused")

    class _Control:
        def inspect(self, timeout: float) -> _Inspector:
            del timeout
            return _Inspector()

    monkeypatch.setattr(health_routes.celery_app, "control", _Control())

    assert health_routes._check_celery_worker_sync() == {"status": "failed", "error": "celery_unavailable"}


def test_celery_without_replies_reports_no_workers(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Inspector:
        def ping(self) -> None:
            return None

    class _Control:
        def inspect(self, timeout: float) -> _Inspector:
            del timeout
            return _Inspector()

    monkeypatch.setattr(health_routes.celery_app, "control", _Control())

    assert health_routes._check_celery_worker_sync() == {"status": "failed", "error": "celery_no_workers"}
