from __future__ import annotations

from fastapi import FastAPI

from iptgram.cookie_auth import CookieOptions
from iptgram.mvc import ControllerRegistry, RouteTemplate, register_conventional_route
from iptgram.routes import register_routes


def register_domain_routes(api: FastAPI, *, cookie_options: CookieOptions) -> None:
    register_routes(api, cookie_options=cookie_options)


def register_default_route(api: FastAPI, *, controllers: ControllerRegistry) -> RouteTemplate:
    # Must run after every explicit route: the conventional route is a catch-all.
    return register_conventional_route(api, registry=controllers)
