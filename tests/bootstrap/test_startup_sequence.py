from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from conftest import build_test_config, login
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from iptgram import create_app
from iptgram.bootstrap.exception_handlers import register_exception_handlers
from iptgram.bootstrap.middleware import StaticFilesMiddleware
from iptgram.identity import IdentityOperationError
from iptgram.seed import DbInitializer


def test_seed_completes_before_first_request_is_served():
    events: list[str] = []
    original_seed = DbInitializer.seed

    def recording_seed(self):
        events.append("seed:start")
        created = original_seed(self)
        events.append("seed:done")
        return created

    app = create_app(build_test_config())

    @app.middleware("http")
    async def record_request(request, call_next):
        events.append(f"request:{request.url.path}")
        return await call_next(request)

    with patch.object(DbInitializer, "seed", recording_seed):
        assert events == []
        with TestClient(app) as client:
            assert events == ["seed:start", "seed:done"]
            assert login(client).status_code == 200

    assert events == ["seed:start", "seed:done", "request:/api/account/login"]


def test_seed_is_idempotent_for_existing_users(app_instance):
    with TestClient(app_instance):
        services = app_instance.state.services
        assert services.user_manager().count() == 1
        assert services.db_initializer().seed() == 0
        assert services.user_manager().count() == 1


def test_seed_failure_aborts_startup():
    app = create_app(
        build_test_config(IPTGram={"SeedUsers": [{"UserName": "weak", "Password": "abc"}]})
    )

    with pytest.raises(IdentityOperationError):
        with TestClient(app):
            pass  # pragma: no cover


def test_container_builds_fresh_db_initializer_per_call(app_instance):
    services = app_instance.state.services

    assert services.db_initializer() is not services.db_initializer()


def test_development_mode_enables_detailed_errors():
    dev_app = create_app(build_test_config(APP_ENV="development"))
    test_app = create_app(build_test_config(APP_ENV="test"))

    assert dev_app.debug is True
    assert SQLAlchemyError in dev_app.exception_handlers
    assert test_app.debug is False
    assert SQLAlchemyError not in test_app.exception_handlers


def test_development_database_errors_include_driver_message():
    api = FastAPI()
    register_exception_handlers(
        api,
        logger=logging.getLogger("test.bootstrap.handlers"),
        challenge=lambda _request: None,
        development=True,
    )

    @api.get("/broken")
    async def broken():
        raise SQLAlchemyError("no such table: users")

    with TestClient(api) as client:
        response = client.get("/broken")

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "DATABASE_ERROR"
    assert body["details"]["message"] == "no such table: users"


def test_middleware_pipeline_order(app_instance):
    names = [getattr(m.cls, "__name__", "") for m in app_instance.user_middleware]
    kwargs = [m.kwargs for m in app_instance.user_middleware]

    # Outermost first: request context, CORS, authentication, static files.
    assert names[1] == "CORSMiddleware"
    assert names[-1] == StaticFilesMiddleware.__name__
    assert kwargs[0]["dispatch"].__name__ == "request_context"
    assert kwargs[2]["dispatch"].__name__ == "cookie_authentication"


def test_create_app_disposes_db_engine_on_shutdown(app_instance):
    class _TrackingEngine:
        def __init__(self):
            self.disposed = False

        def dispose(self):
            self.disposed = True

    engine = _TrackingEngine()
    app_instance.state.db_engine = engine

    with TestClient(app_instance):
        assert engine.disposed is False

    assert engine.disposed is True


def test_failed_seed_still_disposes_engine(app_instance):
    class _TrackingEngine:
        def __init__(self):
            self.disposed = False

        def dispose(self):
            self.disposed = True

    engine = _TrackingEngine()
    app_instance.state.db_engine = engine

    def failing_seed(self):
        raise SQLAlchemyError("database unavailable")

    with patch.object(DbInitializer, "seed", failing_seed):
        with pytest.raises(SQLAlchemyError, match="database unavailable"):
            with TestClient(app_instance):
                pass

    assert engine.disposed is True


def test_every_response_carries_request_id(client):
    response = client.get("/health/live", headers={"X-Request-Id": "req-123"})

    assert response.headers["X-Request-Id"] == "req-123"
    assert client.get("/").headers.get("X-Request-Id")
