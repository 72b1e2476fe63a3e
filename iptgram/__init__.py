import logging
from contextlib import asynccontextmanager
from contextlib import suppress

from fastapi import FastAPI
from sqlalchemy import text

from iptgram.bootstrap import (
    register_core_middleware,
    register_default_route,
    register_domain_routes,
    register_exception_handlers,
    register_system_routes,
    validate_startup_config,
    warn_permissive_posture,
)
from iptgram.config import Config
from iptgram.container import build_service_container
from iptgram.database import init_db
from iptgram.logging_config import configure_logging
from iptgram.version import APP_VERSION

OPENAPI_TAGS: list[dict[str, str]] = [
    {"name": "system", "description": "System and health endpoints"},
    {"name": "account", "description": "Cookie sign-in, sign-out and registration"},
]

logger = logging.getLogger("iptgram.api")


def create_app(app_config: Config | None = None) -> FastAPI:
    if app_config is None:
        app_config = Config()

    configure_logging(level=app_config.LOG_LEVEL, json_logs=app_config.LOG_JSON)
    validate_startup_config(app_config)
    warn_permissive_posture(app_config, logger)

    @asynccontextmanager
    async def _lifespan(_api: FastAPI):
        try:
            # Requests are not dispatched until this returns; a failing seed aborts startup.
            _api.state.services.db_initializer().seed()
            logger.info("startup_completed", extra={"database_backend": app_config.DATABASE_BACKEND.value})
            yield
        finally:
            db_engine = getattr(_api.state, "db_engine", None)
            if db_engine is not None and hasattr(db_engine, "dispose"):
                with suppress(Exception):
                    db_engine.dispose()

    api = FastAPI(
        title=app_config.app_options.ApplicationName,
        version=APP_VERSION,
        description="IPTGram web application",
        openapi_tags=OPENAPI_TAGS,
        debug=app_config.is_development,
        lifespan=_lifespan,
    )
    api.state.config = app_config

    db_engine = init_db(
        app_config.DATABASE_BACKEND,
        app_config.default_connection,
        pool_size=app_config.DB_POOL_SIZE,
        max_overflow=app_config.DB_MAX_OVERFLOW,
        pool_timeout_seconds=app_config.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle_seconds=app_config.DB_POOL_RECYCLE_SECONDS,
    )
    services = build_service_container(app_config, db_engine=db_engine)
    api.state.db_engine = db_engine
    api.state.connection_provider = services.connection_provider
    api.state.services = services

    def db_health_check() -> tuple[bool, str | None]:
        try:
            with api.state.connection_provider() as conn:
                conn.execute(text("SELECT 1"))
            return True, None
        except Exception as exc:
            logger.exception("health_db_check_failed", extra={"error": type(exc).__name__})
            return False, "database connection failed"

    register_core_middleware(api, app_config, authentication=services.cookie_authentication)
    register_domain_routes(api, cookie_options=services.cookie_options)
    register_system_routes(api, db_health_check=db_health_check)
    register_exception_handlers(
        api,
        logger=logger,
        challenge=services.cookie_authentication.challenge,
        development=app_config.is_development,
    )
    register_default_route(api, controllers=services.controllers)

    return api
