from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.engine import Engine

from iptgram.config import SeedUser
from iptgram.identity import UserManager
from iptgram.tables import metadata


class DbInitializer:
    """Creates the schema and the configured seed users. Built once per start, then dropped."""

    def __init__(
        self,
        *,
        db_engine: Engine,
        user_manager: UserManager,
        seed_users: Sequence[SeedUser],
        logger: logging.Logger,
    ) -> None:
        self._db_engine = db_engine
        self._user_manager = user_manager
        self._seed_users = list(seed_users)
        self._logger = logger

    def seed(self) -> int:
        metadata.create_all(self._db_engine)

        created = 0
        for seed_user in self._seed_users:
            if self._user_manager.find_by_name(seed_user.UserName) is not None:
                continue
            self._user_manager.create(seed_user.UserName, seed_user.Password, email=seed_user.Email)
            created += 1

        self._logger.info("database_seeded", extra={"seed_users_created": created})
        return created
