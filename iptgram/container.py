"""Explicit dependency graph built once per application instance."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.engine import Engine

from iptgram.config import AppOptions, Config
from iptgram.controllers import build_controller_registry
from iptgram.cookie_auth import CookieAuthentication, CookieOptions
from iptgram.identity import PasswordHasher, PasswordOptions, SignInManager, UserManager
from iptgram.mvc import ControllerRegistry
from iptgram.ports.repositories import UserRepositoryPort
from iptgram.repositories.session_provider import ConnectionProvider, engine_connection_provider
from iptgram.repositories.user_repository import UserRepository
from iptgram.seed import DbInitializer


@dataclass
class ServiceContainer:
    config: Config
    app_options: AppOptions
    db_engine: Engine
    connection_provider: ConnectionProvider
    password_options: PasswordOptions
    password_hasher: PasswordHasher
    cookie_options: CookieOptions
    cookie_authentication: CookieAuthentication
    controllers: ControllerRegistry

    def user_repository(self) -> UserRepositoryPort:
        return UserRepository(connection_provider=self.connection_provider)

    def user_manager(self) -> UserManager:
        return UserManager(
            repository=self.user_repository(),
            password_hasher=self.password_hasher,
            password_options=self.password_options,
        )

    def sign_in_manager(self) -> SignInManager:
        return SignInManager(user_manager=self.user_manager(), authentication=self.cookie_authentication)

    def db_initializer(self) -> DbInitializer:
        return DbInitializer(
            db_engine=self.db_engine,
            user_manager=self.user_manager(),
            seed_users=self.app_options.SeedUsers,
            logger=logging.getLogger("iptgram.seed"),
        )


def build_service_container(
    config: Config,
    *,
    db_engine: Engine,
    controllers: ControllerRegistry | None = None,
) -> ServiceContainer:
    connection_provider = engine_connection_provider(db_engine)

    def current_security_stamp(user_id: int) -> str | None:
        user = UserRepository(connection_provider=connection_provider).get_user(user_id)
        return user["security_stamp"] if user is not None else None

    cookie_options = CookieOptions.from_config(config)
    return ServiceContainer(
        config=config,
        app_options=config.app_options,
        db_engine=db_engine,
        connection_provider=connection_provider,
        password_options=PasswordOptions.from_config(config),
        password_hasher=PasswordHasher(),
        cookie_options=cookie_options,
        cookie_authentication=CookieAuthentication(cookie_options, security_stamp_lookup=current_security_stamp),
        controllers=controllers or build_controller_registry(),
    )
