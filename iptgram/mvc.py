"""Convention-based routing: ``{controller=Home}/{action=Index}/{id?}``.

A request path is matched positionally against a route template, the
controller class is looked up by name and the action method is invoked on a
fresh controller instance. Explicit routers registered on the app take
precedence because the conventional route is added last as a catch-all.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool
from starlette.responses import HTMLResponse, JSONResponse, Response

from iptgram.cookie_auth import AuthenticationRequired, CurrentUser
from iptgram.errors import not_found

DEFAULT_ROUTE_TEMPLATE = "{controller=Home}/{action=Index}/{id?}"
CONVENTIONAL_ROUTE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
AUTHORIZE_ATTR = "__iptgram_authorize__"
CONTROLLER_SUFFIX = "Controller"

T = TypeVar("T")


@dataclass(frozen=True)
class RouteSegment:
    literal: str | None = None
    name: str | None = None
    default: str | None = None
    optional: bool = False

    @property
    def is_literal(self) -> bool:
        return self.literal is not None

    @property
    def can_be_omitted(self) -> bool:
        return self.default is not None or self.optional


def _parse_segment(raw: str, template: str) -> RouteSegment:
    if not raw:
        raise ValueError(f"route template '{template}' contains an empty segment")
    if not (raw.startswith("{") or raw.endswith("}")):
        if "{" in raw or "}" in raw:
            raise ValueError(f"route template '{template}' has a malformed segment '{raw}'")
        return RouteSegment(literal=raw)
    if not (raw.startswith("{") and raw.endswith("}")):
        raise ValueError(f"route template '{template}' has a malformed segment '{raw}'")

    body = raw[1:-1].strip()
    optional = body.endswith("?")
    if optional:
        body = body[:-1]
    name, has_default, default = body.partition("=")
    name = name.strip()
    if not name.isidentifier():
        raise ValueError(f"route template '{template}' has an invalid parameter name '{name}'")
    if optional and has_default:
        raise ValueError(f"route parameter '{name}' cannot be optional and have a default value")
    return RouteSegment(name=name, default=default.strip() if has_default else None, optional=optional)


class RouteTemplate:
    def __init__(self, template: str, segments: list[RouteSegment]) -> None:
        self.template = template
        self.segments = segments

    @classmethod
    def parse(cls, template: str) -> "RouteTemplate":
        stripped = template.strip().strip("/")
        raw_segments = stripped.split("/") if stripped else []
        segments = [_parse_segment(raw, template) for raw in raw_segments]

        seen: set[str] = set()
        omittable_seen = False
        for segment in segments:
            if segment.name is not None:
                if segment.name.lower() in seen:
                    raise ValueError(f"route parameter '{segment.name}' appears more than once")
                seen.add(segment.name.lower())
            if segment.can_be_omitted:
                omittable_seen = True
            elif omittable_seen:
                raise ValueError("a required segment cannot follow an optional or defaulted one")
        return cls(template, segments)

    def match(self, path: str) -> dict[str, str | None] | None:
        stripped = (path or "").strip("/")
        parts = stripped.split("/") if stripped else []
        if len(parts) > len(self.segments):
            return None

        values: dict[str, str | None] = {}
        for index, segment in enumerate(self.segments):
            if index < len(parts):
                part = parts[index]
                if not part:
                    return None
                if segment.is_literal:
                    if part.lower() != str(segment.literal).lower():
                        return None
                    continue
                values[str(segment.name)] = part
                continue

            if segment.is_literal:
                return None
            if segment.default is not None:
                values[str(segment.name)] = segment.default
            elif segment.optional:
                values[str(segment.name)] = None
            else:
                return None
        return values


def authorize(target: T) -> T:
    """Require a signed-in user for an action, or for every action of a controller."""
    setattr(target, AUTHORIZE_ATTR, True)
    return target


class Controller:
    def __init__(self, request: Request, services: Any) -> None:
        self.request = request
        self.services = services

    @property
    def user(self) -> CurrentUser | None:
        return getattr(self.request.state, "user", None)

    @property
    def app_options(self) -> Any:
        return self.services.app_options


_BASE_CONTROLLER_MEMBERS = frozenset(vars(Controller))


def controller_name(controller_cls: type) -> str:
    name = controller_cls.__name__
    if name.endswith(CONTROLLER_SUFFIX) and len(name) > len(CONTROLLER_SUFFIX):
        name = name[: -len(CONTROLLER_SUFFIX)]
    return name


class ControllerRegistry:
    def __init__(self) -> None:
        self._controllers: dict[str, type[Controller]] = {}
        self._actions: dict[str, dict[str, str]] = {}

    def register(self, controller_cls: type[Controller]) -> type[Controller]:
        key = controller_name(controller_cls).lower()
        actions = {
            attr_name.lower(): attr_name
            for attr_name, _member in inspect.getmembers(controller_cls, inspect.isfunction)
            if not attr_name.startswith("_") and attr_name not in _BASE_CONTROLLER_MEMBERS
        }
        self._controllers[key] = controller_cls
        self._actions[key] = actions
        return controller_cls

    def names(self) -> list[str]:
        return sorted(controller_name(cls) for cls in self._controllers.values())

    def resolve(self, controller: str | None, action: str | None) -> tuple[type[Controller], str] | None:
        if not controller or not action:
            return None
        key = controller.lower()
        controller_cls = self._controllers.get(key)
        if controller_cls is None:
            return None
        attr_name = self._actions[key].get(action.lower())
        if attr_name is None:
            return None
        return controller_cls, attr_name


def requires_authentication(controller_cls: type, action: Callable[..., Any]) -> bool:
    return bool(getattr(action, AUTHORIZE_ATTR, False) or getattr(controller_cls, AUTHORIZE_ATTR, False))


def to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=204)
    if isinstance(result, str):
        return HTMLResponse(result)
    return JSONResponse(jsonable_encoder(result))


def build_conventional_endpoint(
    registry: ControllerRegistry,
    template: RouteTemplate,
) -> Callable[[Request], Any]:
    async def dispatch(request: Request) -> Response:
        values = template.match(request.url.path)
        resolved = registry.resolve(values.get("controller"), values.get("action")) if values else None
        if values is None or resolved is None:
            raise not_found()

        controller_cls, attr_name = resolved
        if requires_authentication(controller_cls, getattr(controller_cls, attr_name)):
            if getattr(request.state, "user", None) is None:
                raise AuthenticationRequired()

        request.state.route_values = values
        controller = controller_cls(request, request.app.state.services)
        action = getattr(controller, attr_name)
        kwargs: dict[str, Any] = {}
        if "id" in inspect.signature(action).parameters:
            kwargs["id"] = values.get("id")

        if inspect.iscoroutinefunction(action):
            result = await action(**kwargs)
        else:
            result = await run_in_threadpool(action, **kwargs)
        return to_response(result)

    return dispatch


def register_conventional_route(
    api: FastAPI,
    *,
    registry: ControllerRegistry,
    template: str = DEFAULT_ROUTE_TEMPLATE,
) -> RouteTemplate:
    route_template = RouteTemplate.parse(template)
    api.add_route(
        "/{path:path}",
        build_conventional_endpoint(registry, route_template),
        methods=CONVENTIONAL_ROUTE_METHODS,
        name="default",
        include_in_schema=False,
    )
    return route_template
