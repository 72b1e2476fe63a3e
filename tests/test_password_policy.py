from __future__ import annotations

import pytest
from conftest import InMemoryUserRepository, build_test_config

from iptgram.identity import (
    IdentityOperationError,
    PasswordHasher,
    PasswordOptions,
    UserManager,
    validate_password,
)


def _user_manager(options: PasswordOptions | None = None) -> UserManager:
    return UserManager(
        repository=InMemoryUserRepository(),
        password_hasher=PasswordHasher(),
        password_options=options or PasswordOptions(),
    )


def test_relaxed_policy_accepts_lowercase_only_password():
    assert validate_password("abcdefgh", PasswordOptions()) == []


def test_policy_defaults_follow_config():
    options = PasswordOptions.from_config(build_test_config())

    assert options == PasswordOptions()
    assert options.require_uppercase is False
    assert options.require_lowercase is False
    assert options.require_non_alphanumeric is False


@pytest.mark.parametrize(
    ("password", "options", "expected_codes"),
    [
        ("abc", PasswordOptions(), ["PasswordTooShort"]),
        ("", PasswordOptions(), ["PasswordTooShort", "PasswordRequiresUniqueChars"]),
        ("abcdefgh", PasswordOptions(require_digit=True), ["PasswordRequiresDigit"]),
        ("abcdefgh", PasswordOptions(require_uppercase=True), ["PasswordRequiresUpper"]),
        ("ABCDEFGH", PasswordOptions(require_lowercase=True), ["PasswordRequiresLower"]),
        ("abcdefg1", PasswordOptions(require_non_alphanumeric=True), ["PasswordRequiresNonAlphanumeric"]),
        ("aaaaaaaa", PasswordOptions(required_unique_chars=3), ["PasswordRequiresUniqueChars"]),
    ],
)
def test_policy_reports_each_violated_rule(password, options, expected_codes):
    assert [error.code for error in validate_password(password, options)] == expected_codes


def test_password_hasher_verifies_only_the_original_password():
    hasher = PasswordHasher()
    hashed = hasher.hash_password("abcdefgh" * 20)

    assert hashed != "abcdefgh" * 20
    assert hasher.verify_password("abcdefgh" * 20, hashed) is True
    assert hasher.verify_password("abcdefgh" * 19, hashed) is False
    assert hasher.verify_password("abcdefgh", "not-a-bcrypt-hash") is False


def test_user_manager_creates_and_finds_users_by_normalized_name():
    manager = _user_manager()

    user = manager.create("  Dave ", "abcdefgh", email="Dave@Example.com")

    assert user["user_name"] == "Dave"
    assert user["normalized_user_name"] == "DAVE"
    assert user["normalized_email"] == "DAVE@EXAMPLE.COM"
    assert manager.find_by_name("dave") == user
    assert manager.check_password(user, "abcdefgh") is True
    assert manager.check_password(user, "abcdefgi") is False
    assert manager.count() == 1


def test_user_manager_collects_all_errors():
    manager = _user_manager()
    manager.create("erin", "abcdefgh")

    with pytest.raises(IdentityOperationError) as exc_info:
        manager.create("ERIN", "abc")

    assert [error.code for error in exc_info.value.errors] == ["DuplicateUserName", "PasswordTooShort"]


def test_user_manager_rejects_blank_user_name():
    with pytest.raises(IdentityOperationError) as exc_info:
        _user_manager().create("   ", "abcdefgh")

    assert [error.code for error in exc_info.value.errors] == ["InvalidUserName"]
