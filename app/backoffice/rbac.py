from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any

from flask import abort, current_app, g, redirect, request, url_for

from app.backoffice.constants import ADMIN_ROLES
from app.backoffice.modules.admins.models import Admin


def role_rank(role: str | None) -> int | None:
    """0 is most privileged; None for unknown roles."""
    if role not in ADMIN_ROLES:
        return None
    return ADMIN_ROLES.index(role)


def outranks(actor_role: str | None, role: str | None) -> bool:
    """True when ``role`` sits strictly above ``actor_role``. Unknown roles never outrank."""
    actor_rank, rank = role_rank(actor_role), role_rank(role)
    if rank is None:
        return False
    return actor_rank is None or rank < actor_rank


class Authorization:
    """Role-threshold checks: ``check(key)`` passes when the admin's role is at least the minimum for ``key``."""

    def __init__(self, admin: Admin | None, minimum_roles: Mapping[str, str]):
        self.admin = admin
        self.minimum_roles = minimum_roles

    def check(self, key: str) -> bool:
        if self.admin is None:
            return False
        rank = role_rank(self.admin.role)
        if rank is None:
            return False
        # Unconfigured keys are owner-only.
        required = role_rank(self.minimum_roles.get(key, ADMIN_ROLES[0]))
        if required is None:
            required = 0
        return rank <= required


def current_authorization() -> Authorization:
    return Authorization(getattr(g, "current_admin", None), current_app.config.get("AUTHORIZATION") or {})


def require_authorization(key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            admin: Admin | None = getattr(g, "current_admin", None)
            # Unauthenticated → redirect to login.
            if admin is None:
                nxt = request.full_path or request.path
                # Avoid trailing '?' from full_path when there is no query string.
                if nxt.endswith("?"):
                    nxt = nxt[:-1]
                return redirect(url_for("auth.login_get", next=nxt))
            if not current_authorization().check(key):
                g.missing_permission = key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
