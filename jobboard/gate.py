"""Per-request authorization gate driven by a declarative route table."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, FrozenSet, Iterable, List, Mapping, Optional, Pattern, Union
from urllib.parse import urlencode

import yaml

from .database import Database
from .errors import StoreUnavailable
from .models import AccountStatus, AccountSummary, AccountWithSecrets, Role
from .sessions import SessionClaims, SessionTokenIssuer

logger = logging.getLogger("jobboard.gate")

LOGIN_PATH = "/login"
HOME_PATH = "/"

_PARAM_PATTERN = re.compile(r"\{[A-Za-z_][A-Za-z0-9_]*\}")
_HTTP_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}


def normalize_path(path: str) -> str:
    if not path:
        return "/"
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


@dataclass(frozen=True)
class RouteRule:
    method: Optional[str]
    pattern: str
    roles: FrozenSet[Role]
    regex: Optional[Pattern[str]]

    @property
    def is_literal(self) -> bool:
        return self.regex is None

    def matches(self, method: str, path: str) -> bool:
        if self.method is not None and self.method != method:
            return False
        if self.regex is None:
            return self.pattern == path
        return self.regex.fullmatch(path) is not None


def _compile_pattern(pattern: str) -> Optional[Pattern[str]]:
    if not _PARAM_PATTERN.search(pattern):
        return None
    parts = _PARAM_PATTERN.split(pattern)
    return re.compile("[^/]+".join(re.escape(part) for part in parts))


def _parse_rule_key(key: str) -> tuple[Optional[str], str]:
    head, _, rest = key.strip().partition(" ")
    if rest and head.upper() in _HTTP_METHODS:
        return head.upper(), normalize_path(rest.strip())
    return None, normalize_path(key.strip())


class RouteTable:
    """Static mapping of paths to the roles allowed to reach them."""

    def __init__(
        self,
        *,
        public: Iterable[str],
        protected: Mapping[str, Iterable[Union[str, Role]]],
    ) -> None:
        self._public = frozenset(normalize_path(path) for path in public)
        rules: List[RouteRule] = []
        for key, roles in protected.items():
            method, pattern = _parse_rule_key(key)
            role_set = frozenset(Role.parse(role) for role in roles)
            if not role_set:
                raise ValueError(f"Route '{key}' must allow at least one role")
            rules.append(RouteRule(method, pattern, role_set, _compile_pattern(pattern)))

        # Literal paths beat patterns; method-specific entries beat generic ones.
        self._rules = sorted(
            rules,
            key=lambda rule: (not rule.is_literal, rule.method is None),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "RouteTable":
        public = data.get("public") or []
        protected = data.get("protected") or {}
        if not isinstance(public, list) or not isinstance(protected, dict):
            raise ValueError("Route table must define a 'public' list and a 'protected' mapping")
        return cls(public=[str(item) for item in public], protected=protected)

    @classmethod
    def from_yaml(cls, path: Path) -> "RouteTable":
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        return cls.from_mapping(raw)

    def is_public(self, path: str) -> bool:
        return normalize_path(path) in self._public

    def required_roles(self, method: str, path: str) -> Optional[FrozenSet[Role]]:
        normalized = normalize_path(path)
        upper = method.upper()
        for rule in self._rules:
            if rule.matches(upper, normalized):
                return rule.roles
        return None


class DenyReason(str, Enum):
    LOGIN_REQUIRED = "LoginRequired"
    ACCESS_DENIED = "AccessDenied"
    FORBIDDEN = "Forbidden"
    REFERRAL_EXPIRED = "ReferralExpired"
    STORE_UNAVAILABLE = "StoreUnavailable"


@dataclass(frozen=True)
class Allow:
    account: Optional[AccountSummary] = None
    claims: Optional[SessionClaims] = None


@dataclass(frozen=True)
class Redirect:
    location: str
    reason: DenyReason
    status: Optional[AccountStatus] = None


Decision = Union[Allow, Redirect]


class AuthorizationGate:
    """Decide whether a request may reach its route handler.

    Checks run in a fixed order: account status, then route role, then
    referral expiry. Account state is re-read from the store for every
    request carrying a session, so revocations apply immediately even
    though the token itself lives for 30 days.
    """

    def __init__(
        self,
        database: Database,
        issuer: SessionTokenIssuer,
        routes: RouteTable,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._database = database
        self._issuer = issuer
        self._routes = routes
        self._clock = clock

    @property
    def routes(self) -> RouteTable:
        return self._routes

    def authorize(self, method: str, path: str, token: Optional[str]) -> Decision:
        try:
            return self._decide(method, path, token)
        except StoreUnavailable:
            logger.error("Credential store unavailable while authorizing %s %s", method, path)
            return Redirect(LOGIN_PATH, DenyReason.STORE_UNAVAILABLE)
        except Exception:
            logger.exception("Authorization failed for %s %s; denying", method, path)
            return Redirect(LOGIN_PATH, DenyReason.LOGIN_REQUIRED)

    def _decide(self, method: str, path: str, token: Optional[str]) -> Decision:
        if self._routes.is_public(path):
            return Allow()

        claims = self._issuer.decode(token)
        account: Optional[AccountWithSecrets] = None
        if claims is not None:
            account = self._database.find_with_secrets_by_id(claims.account_id)
            if account is None:
                logger.warning("Session for unknown account %s ignored", claims.account_id)
                claims = None

        if account is not None and account.status is not AccountStatus.APPROVED:
            logger.warning(
                "User %s account status is %s. Redirecting to login.",
                account.email,
                account.status.value,
            )
            query = urlencode({"error": DenyReason.ACCESS_DENIED.value, "status": account.status.value})
            return Redirect(f"{LOGIN_PATH}?{query}", DenyReason.ACCESS_DENIED, account.status)

        required = self._routes.required_roles(method, path)
        if required is None:
            return Allow(account.summary() if account else None, claims)

        role = account.role if account is not None else Role.GUEST
        if role is Role.GUEST:
            return Redirect(LOGIN_PATH, DenyReason.LOGIN_REQUIRED)

        if role not in required:
            logger.warning(
                "Access Denied: User %s (Role: %s) tried to access %s %s",
                account.email,
                role.value,
                method,
                path,
            )
            return Redirect(HOME_PATH, DenyReason.FORBIDDEN)

        if account.referral_expired(self._clock()):
            logger.warning("User %s access expired. Redirecting to login.", account.email)
            query = urlencode({"error": DenyReason.REFERRAL_EXPIRED.value})
            return Redirect(f"{LOGIN_PATH}?{query}", DenyReason.REFERRAL_EXPIRED)

        return Allow(account.summary(), claims)


def load_route_table(path: Path) -> RouteTable:
    return RouteTable.from_yaml(path)


__all__ = [
    "Allow",
    "AuthorizationGate",
    "Decision",
    "DenyReason",
    "HOME_PATH",
    "LOGIN_PATH",
    "Redirect",
    "RouteRule",
    "RouteTable",
    "load_route_table",
    "normalize_path",
]
