"""Application factory wiring the store, the gate and the HTTP routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .accounts import AccountService
from .api import register_api_routes
from .authenticator import Authenticator
from .config import Settings, load_settings
from .database import Database
from .errors import JobBoardError
from .gate import AuthorizationGate, load_route_table
from .middleware import GateMiddleware
from .notifications import AccountMailer, Notifier, build_notifier
from .postings import JobBoard
from .referrals import ReferralCodeIssuer
from .sessions import SessionTokenIssuer
from .web import register_ui_routes

logger = logging.getLogger("jobboard.service")


@dataclass(frozen=True)
class Services:
    settings: Settings
    database: Database
    authenticator: Authenticator
    sessions: SessionTokenIssuer
    gate: AuthorizationGate
    issuer: ReferralCodeIssuer
    accounts: AccountService
    jobs: JobBoard
    mailer: AccountMailer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_services(
    settings: Settings,
    *,
    database: Optional[Database] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Services:
    db = database or Database(settings.database_path)
    db.initialize()

    sessions = SessionTokenIssuer(
        settings.require_session_secret(),
        ttl=timedelta(days=settings.session_lifetime_days),
        clock=clock,
    )
    routes = load_route_table(settings.route_table_path)
    mailer = AccountMailer(
        notifier or build_notifier(settings.smtp),
        login_url=f"{settings.public_url.rstrip('/')}/login",
    )

    return Services(
        settings=settings,
        database=db,
        authenticator=Authenticator(db, clock=clock),
        sessions=sessions,
        gate=AuthorizationGate(db, sessions, routes, clock=clock),
        issuer=ReferralCodeIssuer(
            db,
            mailer,
            validity_months=settings.referral_validity_months,
            clock=clock,
        ),
        accounts=AccountService(db),
        jobs=JobBoard(db),
        mailer=mailer,
    )


async def _handle_job_board_error(request: Request, exc: JobBoardError) -> JSONResponse:
    return JSONResponse(
        {"message": exc.message, "code": exc.code},
        status_code=exc.http_status,
    )


def create_app(
    *,
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> FastAPI:
    """Instantiate the FastAPI application for the job board."""

    resolved = settings or load_settings()
    if not resolved.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    services = build_services(resolved, database=database, notifier=notifier, clock=clock)

    app = FastAPI(
        title="Udyog Jagat",
        version="0.1.0",
        description="Referral-gated job board with role-based access control.",
    )
    app.state.services = services
    app.state.database = services.database

    app.add_exception_handler(JobBoardError, _handle_job_board_error)

    @app.get("/healthz", include_in_schema=False)
    async def healthz() -> dict:
        return {"status": "ok"}

    register_api_routes(app)
    register_ui_routes(app)

    # Starlette runs the last added middleware first, so proxy headers are
    # applied before the gate sees the request.
    app.add_middleware(GateMiddleware, gate=services.gate)
    if resolved.trusted_proxies:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=list(resolved.trusted_proxies))

    return app


__all__ = ["Services", "build_services", "create_app"]
