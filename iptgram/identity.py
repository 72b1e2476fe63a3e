"""Credential store: password policy, hashing, user and sign-in managers."""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from typing import Any

import bcrypt
from fastapi import Request, Response
from sqlalchemy.exc import IntegrityError

from iptgram.cookie_auth import CookieAuthentication
from iptgram.ports.dto import UserCreateDTO, UserRecordDTO
from iptgram.ports.repositories import UserRepositoryPort

logger = logging.getLogger("iptgram.identity")


@dataclass(frozen=True)
class PasswordOptions:
    required_length: int = 6
    required_unique_chars: int = 1
    require_digit: bool = False
    require_lowercase: bool = False
    require_uppercase: bool = False
    require_non_alphanumeric: bool = False

    @classmethod
    def from_config(cls, config: Any) -> "PasswordOptions":
        return cls(
            required_length=int(config.PASSWORD_REQUIRED_LENGTH),
            required_unique_chars=int(config.PASSWORD_REQUIRED_UNIQUE_CHARS),
            require_digit=bool(config.PASSWORD_REQUIRE_DIGIT),
            require_lowercase=bool(config.PASSWORD_REQUIRE_LOWERCASE),
            require_uppercase=bool(config.PASSWORD_REQUIRE_UPPERCASE),
            require_non_alphanumeric=bool(config.PASSWORD_REQUIRE_NON_ALPHANUMERIC),
        )


@dataclass(frozen=True)
class IdentityError:
    code: str
    description: str


class IdentityOperationError(Exception):
    def __init__(self, errors: list[IdentityError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(error.description for error in self.errors) or "identity operation failed")


def validate_password(password: str, options: PasswordOptions) -> list[IdentityError]:
    errors: list[IdentityError] = []
    value = password or ""

    if len(value) < options.required_length:
        errors.append(
            IdentityError(
                "PasswordTooShort",
                f"Passwords must be at least {options.required_length} characters.",
            )
        )
    if options.require_non_alphanumeric and all(ch.isalnum() for ch in value):
        errors.append(
            IdentityError(
                "PasswordRequiresNonAlphanumeric",
                "Passwords must have at least one non alphanumeric character.",
            )
        )
    if options.require_digit and not any(ch.isdigit() for ch in value):
        errors.append(IdentityError("PasswordRequiresDigit", "Passwords must have at least one digit ('0'-'9')."))
    if options.require_lowercase and not any(ch.islower() for ch in value):
        errors.append(IdentityError("PasswordRequiresLower", "Passwords must have at least one lowercase ('a'-'z')."))
    if options.require_uppercase and not any(ch.isupper() for ch in value):
        errors.append(IdentityError("PasswordRequiresUpper", "Passwords must have at least one uppercase ('A'-'Z')."))
    if options.required_unique_chars >= 1 and len(set(value)) < options.required_unique_chars:
        errors.append(
            IdentityError(
                "PasswordRequiresUniqueChars",
                f"Passwords must use at least {options.required_unique_chars} different characters.",
            )
        )
    return errors


class PasswordHasher:
    """bcrypt over a SHA-256 pre-hash so inputs past 72 bytes are not truncated."""

    @staticmethod
    def _prehash(password: str) -> bytes:
        return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(self._prehash(password), bcrypt.gensalt()).decode("utf-8")

    def verify_password(self, password: str, hashed_password: str) -> bool:
        try:
            return bool(bcrypt.checkpw(self._prehash(password), hashed_password.encode("utf-8")))
        except (ValueError, TypeError):
            return False


def _duplicate_user_name(user_name: str) -> IdentityError:
    return IdentityError("DuplicateUserName", f"User name '{user_name.strip()}' is already taken.")


def normalize_key(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped.upper() or None


class UserManager:
    def __init__(
        self,
        *,
        repository: UserRepositoryPort,
        password_hasher: PasswordHasher,
        password_options: PasswordOptions,
    ) -> None:
        self._repository = repository
        self._password_hasher = password_hasher
        self._password_options = password_options

    @property
    def password_options(self) -> PasswordOptions:
        return self._password_options

    def validate_password(self, password: str) -> list[IdentityError]:
        return validate_password(password, self._password_options)

    def find_by_name(self, user_name: str) -> UserRecordDTO | None:
        normalized = normalize_key(user_name)
        if normalized is None:
            return None
        return self._repository.find_by_normalized_name(normalized)

    def find_by_id(self, user_id: int) -> UserRecordDTO | None:
        return self._repository.get_user(user_id)

    def count(self) -> int:
        return self._repository.count_users()

    def create(self, user_name: str, password: str, *, email: str | None = None) -> UserRecordDTO:
        errors: list[IdentityError] = []
        normalized_name = normalize_key(user_name)
        if normalized_name is None:
            errors.append(IdentityError("InvalidUserName", f"User name '{user_name}' is invalid."))
        elif self._repository.find_by_normalized_name(normalized_name) is not None:
            errors.append(_duplicate_user_name(user_name))
        errors.extend(self.validate_password(password))
        if errors:
            raise IdentityOperationError(errors)

        clean_email = (email or "").strip() or None
        payload: UserCreateDTO = {
            "user_name": user_name.strip(),
            "normalized_user_name": str(normalized_name),
            "email": clean_email,
            "normalized_email": normalize_key(clean_email),
            "password_hash": self._password_hasher.hash_password(password),
            "security_stamp": secrets.token_hex(16),
        }
        try:
            user = self._repository.create_user(payload)
        except IntegrityError as exc:
            # A concurrent registration won the unique index on normalized_user_name.
            raise IdentityOperationError([_duplicate_user_name(user_name)]) from exc
        logger.info("user_created", extra={"user_id": user.get("id")})
        return user

    def check_password(self, user: UserRecordDTO, password: str) -> bool:
        hashed = user.get("password_hash")
        if not hashed:
            return False
        return self._password_hasher.verify_password(password, hashed)


@dataclass
class SignInResult:
    succeeded: bool
    user: UserRecordDTO | None = None
    ticket: str | None = None
    reason: str | None = field(default=None)


class SignInManager:
    def __init__(self, *, user_manager: UserManager, authentication: CookieAuthentication) -> None:
        self._user_manager = user_manager
        self._authentication = authentication

    def password_sign_in(self, user_name: str, password: str) -> SignInResult:
        user = self._user_manager.find_by_name(user_name)
        if user is None:
            return SignInResult(succeeded=False, reason="unknown_user")
        if not self._user_manager.check_password(user, password):
            logger.info("sign_in_failed", extra={"user_id": user.get("id")})
            return SignInResult(succeeded=False, user=user, reason="invalid_password")
        return SignInResult(succeeded=True, user=user, ticket=self._authentication.issue_ticket(user))

    def sign_in(self, request: Request, response: Response, result: SignInResult) -> None:
        if not result.succeeded or result.ticket is None:
            raise ValueError("cannot sign in with a failed sign-in result")
        self._authentication.append_cookie(request, response, result.ticket)
        logger.info("sign_in_succeeded", extra={"user_id": (result.user or {}).get("id")})

    def sign_out(self, request: Request, response: Response) -> None:
        self._authentication.delete_cookie(request, response)
