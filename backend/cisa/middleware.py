"""HTTP adapter for the session gate."""

from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from cisa.services.session_gate import GateOutcome, SessionGate


class RequestCookies:
    """CookieSource backed by a Starlette request."""

    __slots__ = ("_request",)

    def __init__(self, request: Request) -> None:
        self._request = request

    def get_cookie(self, name: str) -> str | None:
        return self._request.cookies.get(name)


def clear_session_cookie(response: Response, name: str, secure: bool) -> None:
    response.delete_cookie(name, path="/", secure=secure, httponly=True, samesite="lax")


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Applies SessionGate decisions to every inbound request.

    Redirect decisions short-circuit with a 307; allowed requests carry the
    verified principal (or None) on ``request.state.principal``.
    """

    def __init__(self, app: ASGIApp, gate: SessionGate, secure_cookies: bool = False):
        super().__init__(app)
        self.gate = gate
        self.secure_cookies = secure_cookies

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        decision = self.gate.evaluate(request.url.path, RequestCookies(request))

        if decision.outcome is GateOutcome.ALLOW:
            request.state.principal = decision.principal
            return await call_next(request)

        response = RedirectResponse(url=decision.location, status_code=307)
        if decision.clear_cookie:
            clear_session_cookie(response, self.gate.policy.cookie_name, self.secure_cookies)
        return response
