"""
Route classification for the web client's paths.

Gated paths need a signed-in session, but this layer does not enforce it:
the middleware only records what kind of path was requested and lets every
request through. API routes check the Bearer token themselves.
"""

import logging
from typing import Literal, Optional
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .domain.users.schemas import UserRole

logger = logging.getLogger(__name__)

RouteKind = Literal["public", "protected", "other"]

PROTECTED_ROUTES = ("/dashboard", "/practitioner", "/client")

PUBLIC_ROUTES = ("/", "/login", "/signup", "/practitioners", "/pricing", "/forgot-password")

DASHBOARD_PATHS: dict[str, str] = {
    "practitioner": "/practitioner/dashboard",
    "client": "/client/dashboard",
}
DEFAULT_DASHBOARD = DASHBOARD_PATHS["client"]
LOGIN_PATH = "/login"


def is_public_route(path: str) -> bool:
    # "/" only matches exactly, or it would swallow every path
    return any(
        path == route or (route != "/" and path.startswith(route)) for route in PUBLIC_ROUTES
    )


def is_protected_route(path: str) -> bool:
    # "/practitioners" is public even though it starts with "/practitioner"
    if is_public_route(path):
        return False
    return any(path == route or path.startswith(f"{route}/") for route in PROTECTED_ROUTES)


def route_kind(path: str) -> RouteKind:
    if is_public_route(path):
        return "public"
    if is_protected_route(path):
        return "protected"
    return "other"


def dashboard_path_for_role(role: Optional[UserRole]) -> str:
    """Landing page for a role; unknown or missing roles land on the client dashboard"""
    return DASHBOARD_PATHS.get(role or "client", DEFAULT_DASHBOARD)


def safe_redirect(path: Optional[str]) -> Optional[str]:
    """Accept only same-site relative paths as post-login redirects"""
    if not path or not path.startswith("/") or path.startswith("//") or "\\" in path:
        return None
    return path


def login_redirect(path: Optional[str]) -> str:
    """Login URL that returns the user to ``path`` afterwards"""
    if not path:
        return LOGIN_PATH
    return f"{LOGIN_PATH}?redirect={quote(path, safe='')}"


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Tag each request with its route kind; never blocks"""

    async def dispatch(self, request: Request, call_next):
        kind = route_kind(request.url.path)
        request.state.route_kind = kind
        if kind == "protected":
            logger.debug(f"Protected path {request.url.path} passed through to route auth")
        return await call_next(request)
