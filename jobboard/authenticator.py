"""Login decisions for administrator passwords and referral codes."""
from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .database import Database, verify_password
from .errors import (
    AccountPending,
    AccountRejected,
    InvalidCredentials,
    NoPasswordConfigured,
    ReferralCodeRequired,
    ReferralExpired,
)
from .models import AccountStatus, AccountWithSecrets, Identity, Role

logger = logging.getLogger("jobboard.auth")

PasswordVerifier = Callable[[str, str], bool]


def normalize_referral_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    cleaned = code.strip().upper()
    return cleaned or None


def _require_approved(account: AccountWithSecrets) -> None:
    if account.status is AccountStatus.PENDING:
        raise AccountPending()
    if account.status is not AccountStatus.APPROVED:
        raise AccountRejected()


def evaluate_login(
    account: Optional[AccountWithSecrets],
    *,
    password: Optional[str] = None,
    referral_code: Optional[str] = None,
    now: Optional[datetime] = None,
    password_verifier: PasswordVerifier = verify_password,
) -> Identity:
    """Decide a login attempt against an already fetched account record.

    Raises one of the :class:`~jobboard.errors.AuthFailure` subclasses or
    returns the authenticated :class:`Identity`. Reads nothing and writes
    nothing beyond its arguments.
    """

    if account is None:
        raise InvalidCredentials()

    current = now or datetime.now(timezone.utc)

    if account.role is Role.ADMINISTRATOR and not account.password_hash:
        raise NoPasswordConfigured()

    if account.role is Role.ADMINISTRATOR and password:
        if not password_verifier(password, account.password_hash):
            raise InvalidCredentials()
        _require_approved(account)
        return Identity.from_account(account)

    supplied = normalize_referral_code(referral_code)
    if supplied is None:
        raise ReferralCodeRequired()

    if account.status is AccountStatus.PENDING:
        raise AccountPending()

    # Rejection clears the bound code, so a stale code reads as invalid.
    stored = account.referral_code
    if not stored or not hmac.compare_digest(stored.encode("utf-8"), supplied.encode("utf-8")):
        raise InvalidCredentials()

    if account.status is AccountStatus.REJECTED:
        raise AccountRejected()

    if account.referral_expired(current):
        raise ReferralExpired()

    return Identity.from_account(account)


class Authenticator:
    """Look up an account and run :func:`evaluate_login` against it."""

    def __init__(
        self,
        database: Database,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        password_verifier: PasswordVerifier = verify_password,
    ) -> None:
        self._database = database
        self._clock = clock
        self._password_verifier = password_verifier

    def authenticate(
        self,
        email: Optional[str],
        password: Optional[str] = None,
        referral_code: Optional[str] = None,
    ) -> Identity:
        if not email or not email.strip():
            raise InvalidCredentials()

        account = self._database.find_with_secrets_by_email(email)
        try:
            identity = evaluate_login(
                account,
                password=password,
                referral_code=referral_code,
                now=self._clock(),
                password_verifier=self._password_verifier,
            )
        except Exception as exc:
            logger.info("Login refused for %s: %s", email.strip().lower(), type(exc).__name__)
            raise

        logger.info("Login succeeded for account %s (%s)", identity.id, identity.role.value)
        return identity


__all__ = ["Authenticator", "evaluate_login", "normalize_referral_code"]
