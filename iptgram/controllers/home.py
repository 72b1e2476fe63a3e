from __future__ import annotations

from html import escape

from iptgram.cookie_auth import AuthenticationRequired
from iptgram.mvc import Controller, authorize


class HomeController(Controller):
    def index(self) -> str:
        name = escape(self.app_options.ApplicationName)
        return (
            "<!DOCTYPE html>"
            f"<html><head><meta charset=\"utf-8\"><title>{name}</title></head>"
            f"<body><h1>{name}</h1></body></html>"
        )

    @authorize
    def profile(self) -> dict[str, object]:
        user = self.user
        if user is None:
            raise AuthenticationRequired()
        return {"id": user.id, "userName": user.user_name}
