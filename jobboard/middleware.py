"""Starlette middleware that runs the authorization gate before every route."""
from __future__ import annotations

from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from .gate import Allow, AuthorizationGate, DenyReason, Redirect
from .sessions import SESSION_COOKIE_NAME

API_PREFIX = "/api/"

_DENY_MESSAGES = {
    DenyReason.LOGIN_REQUIRED: "Authentication required",
    DenyReason.ACCESS_DENIED: "Account is not approved",
    DenyReason.FORBIDDEN: "Forbidden: Insufficient role",
    DenyReason.REFERRAL_EXPIRED: "Referral code expired",
    DenyReason.STORE_UNAVAILABLE: "The service is temporarily unavailable.",
}


def extract_session_token(request: Request) -> Optional[str]:
    """Read the session token from the Authorization header or the cookie."""

    header = request.headers.get("authorization")
    if header:
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def render_denial(request: Request, decision: Redirect) -> Response:
    if decision.reason is DenyReason.STORE_UNAVAILABLE:
        return JSONResponse(
            {"message": _DENY_MESSAGES[decision.reason], "code": decision.reason.value},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if request.url.path.startswith(API_PREFIX):
        status_code = (
            status.HTTP_403_FORBIDDEN
            if decision.reason is DenyReason.FORBIDDEN
            else status.HTTP_401_UNAUTHORIZED
        )
        payload = {
            "message": _DENY_MESSAGES[decision.reason],
            "reason": decision.reason.value,
            "redirect": decision.location,
        }
        if decision.status is not None:
            payload["status"] = decision.status.value
        return JSONResponse(payload, status_code=status_code)

    return RedirectResponse(decision.location, status_code=status.HTTP_303_SEE_OTHER)


class GateMiddleware(BaseHTTPMiddleware):
    """Short-circuit denied requests; expose the caller on ``request.state``."""

    def __init__(self, app: ASGIApp, *, gate: AuthorizationGate) -> None:
        super().__init__(app)
        self._gate = gate

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        decision = await run_in_threadpool(
            self._gate.authorize,
            request.method,
            request.url.path,
            extract_session_token(request),
        )
        if isinstance(decision, Redirect):
            return render_denial(request, decision)

        assert isinstance(decision, Allow)
        request.state.account = decision.account
        request.state.session = decision.claims
        return await call_next(request)


__all__ = ["API_PREFIX", "GateMiddleware", "extract_session_token", "render_denial"]
