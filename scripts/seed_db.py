from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from iptgram.bootstrap.validation import validate_startup_config  # noqa: E402
from iptgram.config import Config  # noqa: E402
from iptgram.container import build_service_container  # noqa: E402
from iptgram.database import init_db  # noqa: E402
from iptgram.identity import IdentityOperationError  # noqa: E402
from iptgram.logging_config import configure_logging  # noqa: E402


def run_seed(config: Config) -> int:
    validate_startup_config(config)
    db_engine = init_db(
        config.DATABASE_BACKEND,
        config.default_connection,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout_seconds=config.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle_seconds=config.DB_POOL_RECYCLE_SECONDS,
    )
    try:
        services = build_service_container(config, db_engine=db_engine)
        return services.db_initializer().seed()
    finally:
        db_engine.dispose()


def main(*, config_factory: Callable[[], Config] | None = None) -> int:
    config = (config_factory or Config)()
    configure_logging(level=config.LOG_LEVEL, json_logs=config.LOG_JSON)

    try:
        created = run_seed(config)
    except RuntimeError as exc:
        print(f"Seed configuration check failed: {exc}", file=sys.stderr)
        return 1
    except IdentityOperationError as exc:
        print(f"Seed user rejected: {exc}", file=sys.stderr)
        return 1
    except SQLAlchemyError as exc:
        print(f"Database seed failed: {exc}", file=sys.stderr)
        return 2

    print(f"Database seed completed ({created} user(s) created).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
