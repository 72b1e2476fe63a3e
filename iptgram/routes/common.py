from typing import Any

from iptgram.schemas import ErrorResponse

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    401: {"description": "Not signed in (empty body)"},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
