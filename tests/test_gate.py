"""Authorization gate decisions and route table matching."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from unittest import mock

import pytest

from jobboard.config import default_route_table_path
from jobboard.database import Database
from jobboard.errors import StoreUnavailable
from jobboard.gate import (
    Allow,
    AuthorizationGate,
    DenyReason,
    HOME_PATH,
    LOGIN_PATH,
    Redirect,
    RouteTable,
    load_route_table,
)
from jobboard.models import AccountStatus, Identity, Role
from jobboard.sessions import SessionTokenIssuer

from conftest import FrozenClock


@pytest.fixture()
def routes() -> RouteTable:
    return load_route_table(default_route_table_path())


@pytest.fixture()
def issuer(clock: FrozenClock) -> SessionTokenIssuer:
    return SessionTokenIssuer("gate-secret", clock=clock)


@pytest.fixture()
def gate(database: Database, issuer: SessionTokenIssuer, routes: RouteTable, clock: FrozenClock) -> AuthorizationGate:
    return AuthorizationGate(database, issuer, routes, clock=clock)


def _approved(database: Database, email: str, role: Role, clock: FrozenClock, *, expires_in=timedelta(days=30)):
    account = database.create_account(email.split("@")[0].title(), email, role)
    database.approve_account(
        account.id,
        code=email.split("@")[0].upper().ljust(16, "0")[:16],
        expires_at=clock() + expires_in if expires_in is not None else None,
        issued_by=account.id,
    )
    stored = database.find_with_secrets_by_id(account.id)
    assert stored is not None
    return stored


def _token(issuer: SessionTokenIssuer, account) -> str:
    return issuer.issue(Identity.from_account(account)).token


class TestRouteTable:
    def test_literal_paths_and_patterns(self) -> None:
        table = RouteTable(
            public=["/login"],
            protected={
                "/api/jobs/{job_id}": ["Job Seeker"],
                "/api/jobs/posted-by-user": ["Job Poster"],
            },
        )
        assert table.required_roles("GET", "/api/jobs/12") == frozenset({Role.JOB_SEEKER})
        assert table.required_roles("GET", "/api/jobs/posted-by-user") == frozenset({Role.JOB_POSTER})
        assert table.required_roles("GET", "/api/jobs/12/extra") is None
        assert table.required_roles("GET", "/elsewhere") is None

    def test_method_specific_entries_win(self) -> None:
        table = RouteTable(
            public=[],
            protected={
                "/api/jobs": ["Job Seeker", "Job Poster"],
                "POST /api/jobs": ["Job Poster"],
            },
        )
        assert table.required_roles("GET", "/api/jobs") == frozenset({Role.JOB_SEEKER, Role.JOB_POSTER})
        assert table.required_roles("post", "/api/jobs/") == frozenset({Role.JOB_POSTER})

    def test_public_paths_ignore_trailing_slash(self) -> None:
        table = RouteTable(public=["/login"], protected={})
        assert table.is_public("/login/")
        assert not table.is_public("/login/extra")

    def test_empty_role_list_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            RouteTable(public=[], protected={"/admin": []})

    def test_yaml_table_loads(self, tmp_path: Path) -> None:
        path = tmp_path / "routes.yaml"
        path.write_text("public: [/login]\nprotected:\n  /secret: [Administrator]\n", encoding="utf-8")
        table = RouteTable.from_yaml(path)
        assert table.is_public("/login")
        assert table.required_roles("GET", "/secret") == frozenset({Role.ADMINISTRATOR})

    def test_malformed_yaml_table_is_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "routes.yaml"
        path.write_text("public: /login\n", encoding="utf-8")
        with pytest.raises(ValueError):
            RouteTable.from_yaml(path)


def test_public_routes_allow_everyone(gate: AuthorizationGate) -> None:
    for path in ("/login", "/register", "/api/register", "/api/login", "/logout", "/api/logout"):
        assert gate.authorize("GET", path, None) == Allow()
        assert gate.authorize("POST", path, "garbage") == Allow()


def test_guest_is_sent_to_login_for_protected_routes(gate: AuthorizationGate) -> None:
    decision = gate.authorize("GET", "/jobs/find", None)
    assert decision == Redirect(LOGIN_PATH, DenyReason.LOGIN_REQUIRED)

    decision = gate.authorize("GET", "/jobs/find", "tampered-token")
    assert isinstance(decision, Redirect)
    assert decision.reason is DenyReason.LOGIN_REQUIRED


def test_guest_may_reach_unprotected_routes(gate: AuthorizationGate) -> None:
    decision = gate.authorize("GET", "/", None)
    assert isinstance(decision, Allow)
    assert decision.account is None


def test_approved_role_reaches_its_routes(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock)
    token = _token(issuer, alice)

    decision = gate.authorize("GET", "/jobs/find", token)
    assert isinstance(decision, Allow)
    assert decision.account.id == alice.id
    assert decision.claims.account_id == alice.id

    assert isinstance(gate.authorize("POST", "/api/jobs/5/apply", token), Allow)


def test_role_mismatch_goes_home_and_is_logged(gate, database, issuer, clock, caplog) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock)
    token = _token(issuer, alice)

    with caplog.at_level(logging.WARNING, logger="jobboard.gate"):
        decision = gate.authorize("GET", "/admin/users", token)

    assert decision == Redirect(HOME_PATH, DenyReason.FORBIDDEN)
    assert "alice@x.com" in caplog.text

    assert gate.authorize("POST", "/api/jobs", token).reason is DenyReason.FORBIDDEN


def test_status_check_dominates_every_route(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock)
    token = _token(issuer, alice)
    database.reject_account(alice.id)

    for path in ("/", "/admin/users", "/jobs/find", "/unlisted/page"):
        decision = gate.authorize("GET", path, token)
        assert isinstance(decision, Redirect)
        assert decision.reason is DenyReason.ACCESS_DENIED
        assert decision.status is AccountStatus.REJECTED
        assert decision.location == "/login?error=AccessDenied&status=Rejected"


def test_referral_expiry_revokes_live_session(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock)
    token = _token(issuer, alice)
    assert isinstance(gate.authorize("GET", "/jobs/find", token), Allow)

    database.update_referral(alice.id, alice.referral_code, clock() - timedelta(days=1))

    decision = gate.authorize("GET", "/jobs/find", token)
    assert decision == Redirect("/login?error=ReferralExpired", DenyReason.REFERRAL_EXPIRED)
    assert decision != gate.authorize("GET", "/jobs/find", None)


def test_referral_expiry_is_checked_after_role(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock, expires_in=timedelta(days=-1))
    token = _token(issuer, alice)

    assert gate.authorize("GET", "/admin/users", token).reason is DenyReason.FORBIDDEN
    assert gate.authorize("GET", "/jobs/find", token).reason is DenyReason.REFERRAL_EXPIRED


def test_session_past_its_lifetime_is_guest(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock, expires_in=timedelta(days=90))
    token = _token(issuer, alice)

    clock.advance(days=31)
    assert gate.authorize("GET", "/jobs/find", token) == Redirect(LOGIN_PATH, DenyReason.LOGIN_REQUIRED)


def test_admin_without_referral_expiry_is_allowed(gate, database, issuer, admin) -> None:
    stored = database.find_with_secrets_by_id(admin.id)
    token = _token(issuer, stored)

    assert isinstance(gate.authorize("GET", "/admin/users", token), Allow)
    assert isinstance(gate.authorize("PUT", "/api/admin/users", token), Allow)


def test_deleted_account_is_treated_as_guest(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock)
    token = _token(issuer, alice)

    with mock.patch.object(database, "find_with_secrets_by_id", return_value=None):
        assert gate.authorize("GET", "/jobs/find", token).reason is DenyReason.LOGIN_REQUIRED


def test_gate_fails_closed(gate, database, issuer, clock) -> None:
    alice = _approved(database, "alice@x.com", Role.JOB_SEEKER, clock)
    token = _token(issuer, alice)

    with mock.patch.object(database, "find_with_secrets_by_id", side_effect=StoreUnavailable()):
        decision = gate.authorize("GET", "/jobs/find", token)
    assert decision.reason is DenyReason.STORE_UNAVAILABLE

    with mock.patch.object(database, "find_with_secrets_by_id", side_effect=RuntimeError("boom")):
        decision = gate.authorize("GET", "/jobs/find", token)
    assert decision == Redirect(LOGIN_PATH, DenyReason.LOGIN_REQUIRED)
