from __future__ import annotations

import jwt
import pytest
from conftest import TEST_COOKIE_SECRET, build_test_config
from fastapi import FastAPI, Request, Response
from fastapi.testclient import TestClient

from iptgram.cookie_auth import (
    CookieAuthentication,
    CookieOptions,
    CookieSecurePolicy,
    CurrentUser,
    SameSiteMode,
)

USER = {"id": 7, "user_name": "alice", "security_stamp": "stamp-1"}


class FakeClock:
    def __init__(self, now: float = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _authentication(clock: FakeClock, **overrides) -> CookieAuthentication:
    options = {"cookie_name": ".IPTGram.Identity", "secret": TEST_COOKIE_SECRET, "expire_minutes": 60}
    options.update(overrides)
    return CookieAuthentication(CookieOptions(**options), clock=clock)


def test_options_from_config_use_relaxed_defaults():
    options = CookieOptions.from_config(build_test_config())

    assert options.http_only is True
    assert options.secure_policy is CookieSecurePolicy.NONE
    assert options.same_site is SameSiteMode.NONE
    assert options.login_path == "/api/account/login"
    assert options.logout_path == "/api/account/logout"
    assert options.ephemeral_secret is False


def test_missing_secret_generates_ephemeral_key():
    first = CookieOptions.from_config(build_test_config(AUTH_COOKIE_SECRET=None))
    second = CookieOptions.from_config(build_test_config(AUTH_COOKIE_SECRET=None))

    assert first.ephemeral_secret is True
    assert first.secret != second.secret


def test_ticket_round_trip_preserves_identity():
    clock = FakeClock()
    auth = _authentication(clock)

    user = auth.read_ticket(auth.issue_ticket(USER))

    assert user == CurrentUser(
        id=7,
        user_name="alice",
        security_stamp="stamp-1",
        issued_at=int(clock.now),
        expires_at=int(clock.now) + 3600,
    )


def test_expired_ticket_is_rejected():
    clock = FakeClock()
    auth = _authentication(clock)
    ticket = auth.issue_ticket(USER)

    clock.now += 3600

    assert auth.read_ticket(ticket) is None


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "garbage",
        jwt.encode({"sub": "7", "iat": 1, "exp": 9_999_999_999}, "another-secret-that-is-long-enough!!", algorithm="HS256"),
        jwt.encode({"sub": "7", "exp": 9_999_999_999}, TEST_COOKIE_SECRET, algorithm="HS256"),
        jwt.encode({"sub": "not-a-number", "iat": 1, "exp": 9_999_999_999}, TEST_COOKIE_SECRET, algorithm="HS256"),
    ],
)
def test_invalid_tickets_are_rejected(token):
    assert _authentication(FakeClock()).read_ticket(token) is None


def _request_with_cookie(ticket: str) -> Request:
    return Request({"type": "http", "headers": [(b"cookie", f".IPTGram.Identity={ticket}".encode())]})


@pytest.mark.parametrize(
    ("stored_stamp", "authenticated"),
    [("stamp-1", True), ("stamp-2", False), (None, False)],
)
def test_authenticate_checks_stored_security_stamp(stored_stamp, authenticated):
    looked_up = []

    def lookup(user_id):
        looked_up.append(user_id)
        return stored_stamp

    options = CookieOptions(cookie_name=".IPTGram.Identity", secret=TEST_COOKIE_SECRET)
    auth = CookieAuthentication(options, clock=FakeClock(), security_stamp_lookup=lookup)

    user = auth.authenticate(_request_with_cookie(auth.issue_ticket(USER)))

    assert (user is not None) is authenticated
    assert looked_up == [7]


def test_authenticate_skips_lookup_without_ticket():
    def lookup(user_id):
        raise AssertionError("no ticket, no lookup")

    options = CookieOptions(cookie_name=".IPTGram.Identity", secret=TEST_COOKIE_SECRET)
    auth = CookieAuthentication(options, clock=FakeClock(), security_stamp_lookup=lookup)

    assert auth.authenticate(_request_with_cookie("garbage")) is None


def test_sliding_expiration_renews_after_half_lifetime():
    clock = FakeClock()
    auth = _authentication(clock)
    user = auth.read_ticket(auth.issue_ticket(USER))
    assert user is not None

    clock.now += 1800
    assert auth.should_renew(user) is False
    clock.now += 1
    assert auth.should_renew(user) is True
    assert _authentication(clock, sliding_expiration=False).should_renew(user) is False


@pytest.mark.parametrize(
    ("policy", "base_url", "expected_secure"),
    [
        (CookieSecurePolicy.NONE, "https://testserver", False),
        (CookieSecurePolicy.ALWAYS, "http://testserver", True),
        (CookieSecurePolicy.SAME_AS_REQUEST, "http://testserver", False),
        (CookieSecurePolicy.SAME_AS_REQUEST, "https://testserver", True),
    ],
)
def test_secure_flag_follows_policy(policy, base_url, expected_secure):
    auth = _authentication(FakeClock(), secure_policy=policy, same_site=SameSiteMode.LAX)
    api = FastAPI()

    @api.get("/cookie")
    async def cookie(request: Request, response: Response):
        auth.append_cookie(request, response, "ticket")
        return {"ok": True}

    with TestClient(api, base_url=base_url) as client:
        response = client.get("/cookie")

    attributes = [part.strip().lower() for part in response.headers["set-cookie"].split(";")]
    assert ("secure" in attributes) is expected_secure
    assert "samesite=lax" in attributes


def test_challenge_distinguishes_api_and_web_paths():
    auth = _authentication(FakeClock())
    api = FastAPI()

    @api.get("/api/photos")
    async def api_photos(request: Request):
        return auth.challenge(request)

    @api.get("/photos")
    async def web_photos(request: Request):
        return auth.challenge(request)

    with TestClient(api) as client:
        api_response = client.get("/api/photos")
        web_response = client.get("/photos", follow_redirects=False)

    assert api_response.status_code == 401
    assert api_response.content == b""
    assert web_response.status_code == 302
    assert web_response.headers["location"] == "/api/account/login?ReturnUrl=%2Fphotos"
