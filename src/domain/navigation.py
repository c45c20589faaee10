"""
Navigation rules - where auth state sends the user.

Protected pages bounce anonymous visitors to the login page (remembering
where they were going); auth pages bounce signed-in users to their own
profile page.
"""

from urllib.parse import urlencode

from .ports import User

PROTECTED_ROUTES = ("/settings", "/dashboard")
AUTH_ROUTES = ("/login", "/signup", "/forgot-password")

LOGIN_PATH = "/login"
HOME_PATH = "/"
CALLBACK_ERROR_PATH = "/?error=auth_callback_error"


def post_auth_redirect(user: User | None, fallback: str = HOME_PATH) -> str:
    """Profile page of a freshly signed-in user, or the fallback path."""
    if user is not None and user.username:
        return f"/{user.username}"
    return fallback


def resolve_redirect(pathname: str, user: User | None) -> str | None:
    """
    Decide whether a request for pathname must be redirected.

    Returns:
        Redirect target, or None to serve the page
    """
    if user is None and pathname.startswith(PROTECTED_ROUTES):
        return f"{LOGIN_PATH}?{urlencode({'redirect': pathname})}"

    if user is not None and pathname.startswith(AUTH_ROUTES):
        return post_auth_redirect(user)

    return None


def safe_next_path(next_path: str | None) -> str:
    """Accept only same-site absolute paths as a post-auth destination."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return HOME_PATH
    return next_path
