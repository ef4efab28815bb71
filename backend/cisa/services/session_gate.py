"""Per-request admission control for the admin area.

The gate is a decision function: given the request path and a way to read
cookies, it returns what the HTTP layer should do. It holds no state
between requests.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Protocol

from cisa.services.tokens import Principal, TokenExpired, TokenOk, TokenService

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "admin-token"


class CookieSource(Protocol):
    def get_cookie(self, name: str) -> str | None: ...


class GateOutcome(str, enum.Enum):
    ALLOW = "allow"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    ALLOW_WITH_REDIRECT = "allow_with_redirect"


@dataclass(frozen=True, slots=True)
class GateDecision:
    outcome: GateOutcome
    location: str | None = None  # redirect target for non-ALLOW outcomes
    clear_cookie: bool = False
    principal: Principal | None = None


@dataclass(frozen=True, slots=True)
class GatePolicy:
    """Path classification rules, evaluated in a fixed order.

    Unprotected exact paths win over unprotected prefixes, which win over
    protected prefixes. ``/admin/login`` sits under the protected ``/admin``
    prefix and must stay reachable without a session.
    """

    unprotected_exact: tuple[str, ...] = ("/admin/login",)
    unprotected_prefixes: tuple[str, ...] = ("/api",)
    protected_prefixes: tuple[str, ...] = ("/admin",)
    protected_root: str = "/admin"
    landing_path: str = "/admin/dashboard"
    login_path: str = "/admin/login"
    cookie_name: str = SESSION_COOKIE_NAME


def normalize_path(path: str) -> str:
    if not path:
        return "/"
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def _under_prefix(path: str, prefix: str) -> bool:
    """Segment-aware prefix test: /admin matches /admin/x but not /administrator."""
    prefix = normalize_path(prefix)
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


class SessionGate:
    def __init__(self, tokens: TokenService, policy: GatePolicy | None = None) -> None:
        self._tokens = tokens
        self._policy = policy or GatePolicy()

    @property
    def policy(self) -> GatePolicy:
        return self._policy

    def is_protected(self, path: str) -> bool:
        path = normalize_path(path)
        policy = self._policy
        if any(path == normalize_path(p) for p in policy.unprotected_exact):
            return False
        if any(_under_prefix(path, p) for p in policy.unprotected_prefixes):
            return False
        return any(_under_prefix(path, p) for p in policy.protected_prefixes)

    def evaluate(self, path: str, cookies: CookieSource) -> GateDecision:
        policy = self._policy
        if not self.is_protected(path):
            return GateDecision(GateOutcome.ALLOW)

        token = cookies.get_cookie(policy.cookie_name)
        if not token:
            logger.info("No session cookie for protected path %s", path)
            return GateDecision(GateOutcome.REDIRECT_TO_LOGIN, location=policy.login_path)

        result = self._tokens.verify(token)
        if not isinstance(result, TokenOk):
            if isinstance(result, TokenExpired):
                logger.info("Expired session token for %s (expired %s)", path, result.expired_at.isoformat())
            else:
                logger.warning("Rejected session token for %s: %s", path, result.reason)
            return GateDecision(
                GateOutcome.REDIRECT_TO_LOGIN,
                location=policy.login_path,
                clear_cookie=True,
            )

        if normalize_path(path) == normalize_path(policy.protected_root):
            return GateDecision(
                GateOutcome.ALLOW_WITH_REDIRECT,
                location=policy.landing_path,
                principal=result.principal,
            )
        return GateDecision(GateOutcome.ALLOW, principal=result.principal)
