"""Signed, time-bounded login sessions."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from cryptography.fernet import Fernet, InvalidToken

from .models import AccountStatus, Identity, Role

logger = logging.getLogger("jobboard.sessions")

SESSION_COOKIE_NAME = "jobboard_session"
DEFAULT_SESSION_TTL = timedelta(days=30)


@dataclass(frozen=True)
class SessionClaims:
    """Identity asserted by a session token.

    Referral code and expiry are not carried; the gate reads them from the
    live account.
    """

    account_id: int
    email: str
    role: Role
    status: AccountStatus
    name: Optional[str]
    image: Optional[str]
    issued_at: datetime
    expires_at: datetime

    def to_payload(self) -> dict:
        return {
            "sub": self.account_id,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "name": self.name,
            "image": self.image,
            "iat": int(self.issued_at.timestamp()),
            "exp": int(self.expires_at.timestamp()),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionClaims":
        return cls(
            account_id=int(payload["sub"]),
            email=str(payload["email"]),
            role=Role.parse(payload["role"]),
            status=AccountStatus.parse(payload["status"]),
            name=payload.get("name"),
            image=payload.get("image"),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )


@dataclass(frozen=True)
class SignedSession:
    token: str
    claims: SessionClaims


def _build_cipher(secret: str) -> Fernet:
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    key = base64.urlsafe_b64encode(digest)
    return Fernet(key)


class SessionTokenIssuer:
    """Issue and verify encrypted session tokens with an absolute lifetime."""

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if not secret:
            raise ValueError("A session secret must be provided")
        self._cipher = _build_cipher(secret)
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def cookie_max_age(self) -> int:
        return int(self._ttl.total_seconds())

    def issue(self, identity: Identity) -> SignedSession:
        issued_at = self._clock().replace(microsecond=0)
        claims = SessionClaims(
            account_id=identity.id,
            email=identity.email,
            role=identity.role,
            status=identity.status,
            name=identity.name,
            image=identity.image,
            issued_at=issued_at,
            expires_at=issued_at + self._ttl,
        )
        payload = json.dumps(claims.to_payload(), separators=(",", ":")).encode("utf-8")
        token = self._cipher.encrypt_at_time(payload, int(issued_at.timestamp()))
        return SignedSession(token=token.decode("ascii"), claims=claims)

    def decode(self, token: Optional[str]) -> Optional[SessionClaims]:
        """Return the claims of a valid, unexpired token or ``None``."""

        if not token:
            return None
        now = self._clock()
        try:
            payload = self._cipher.decrypt_at_time(
                token.encode("ascii"),
                ttl=self.cookie_max_age,
                current_time=int(now.timestamp()),
            )
            claims = SessionClaims.from_payload(json.loads(payload))
        except InvalidToken:
            return None
        except (UnicodeError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding malformed session token: %s", exc)
            return None

        if claims.expires_at <= now:
            return None
        return claims


__all__ = [
    "DEFAULT_SESSION_TTL",
    "SESSION_COOKIE_NAME",
    "SessionClaims",
    "SessionTokenIssuer",
    "SignedSession",
]
