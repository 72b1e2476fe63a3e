from __future__ import annotations

from collections.abc import Callable
from typing import TypeAlias

from fastapi import Request
from starlette.responses import Response

DBHealthCheck: TypeAlias = Callable[[], tuple[bool, str | None]]
ChallengeHandler: TypeAlias = Callable[[Request], Response]
