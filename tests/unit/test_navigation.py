"""
Unit tests for navigation rules.
"""

import pytest

from src.domain.navigation import post_auth_redirect, resolve_redirect, safe_next_path
from src.domain.ports import User

ALICE = User(id="user-1", email="alice@example.com", username="alice")


class TestResolveRedirect:
    """Tests for resolve_redirect()."""

    @pytest.mark.parametrize("path", ["/settings", "/settings/profile", "/dashboard"])
    def test_anonymous_protected_route_goes_to_login(self, path: str) -> None:
        target = resolve_redirect(path, None)

        assert target is not None
        assert target.startswith("/login?redirect=")
        assert target.endswith(path.replace("/", "%2F"))

    @pytest.mark.parametrize("path", ["/login", "/signup", "/forgot-password"])
    def test_signed_in_auth_route_goes_to_profile(self, path: str) -> None:
        assert resolve_redirect(path, ALICE) == "/alice"

    @pytest.mark.parametrize(
        "path, user",
        [
            ("/", None),
            ("/alice", None),
            ("/login", None),
            ("/settings", ALICE),
            ("/bob", ALICE),
        ],
    )
    def test_no_redirect(self, path: str, user: User | None) -> None:
        assert resolve_redirect(path, user) is None


class TestPostAuthRedirect:
    """Tests for post_auth_redirect()."""

    def test_user_with_username(self) -> None:
        assert post_auth_redirect(ALICE) == "/alice"

    def test_user_without_username_falls_back(self) -> None:
        user = User(id="user-2", email="bob@example.com")

        assert post_auth_redirect(user) == "/"
        assert post_auth_redirect(user, fallback="/welcome") == "/welcome"

    def test_no_user(self) -> None:
        assert post_auth_redirect(None, fallback="/next") == "/next"


class TestSafeNextPath:
    """Tests for safe_next_path()."""

    @pytest.mark.parametrize("value", ["/settings", "/alice?tab=links"])
    def test_local_paths_pass(self, value: str) -> None:
        assert safe_next_path(value) == value

    @pytest.mark.parametrize(
        "value", [None, "", "https://evil.example", "//evil.example", "settings"]
    )
    def test_everything_else_goes_home(self, value: str | None) -> None:
        assert safe_next_path(value) == "/"
