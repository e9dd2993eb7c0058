"""Administrator approval workflow and referral code issuance."""
from __future__ import annotations

import calendar
import logging
import secrets
from datetime import datetime, timezone
from typing import Callable, Optional

from .database import Database
from .errors import AlreadyApproved, AlreadyRejected, NotFound, Unauthorized
from .models import AccountStatus, AccountSummary, ReferralCodeRecord, Role
from .notifications import AccountMailer

logger = logging.getLogger("jobboard.referrals")

REFERRAL_CODE_BYTES = 8
_MAX_CODE_ATTEMPTS = 5


def generate_referral_code() -> str:
    """Return 16 upper-case hex characters from 8 random bytes."""

    return secrets.token_hex(REFERRAL_CODE_BYTES).upper()


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by calendar months, clamping the day to the month end."""

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


class ReferralCodeIssuer:
    """Approve or reject pending accounts on behalf of an administrator."""

    def __init__(
        self,
        database: Database,
        mailer: AccountMailer,
        *,
        validity_months: int = 1,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        code_factory: Callable[[], str] = generate_referral_code,
    ) -> None:
        self._database = database
        self._mailer = mailer
        self._validity_months = validity_months
        self._clock = clock
        self._code_factory = code_factory

    def _require_admin(self, acting_admin_id: int) -> AccountSummary:
        admin = self._database.find_by_id(acting_admin_id)
        if admin is None or admin.role is not Role.ADMINISTRATOR:
            logger.warning("Account %s attempted an approval action without admin role", acting_admin_id)
            raise Unauthorized()
        if admin.status is not AccountStatus.APPROVED:
            logger.warning("Administrator %s is not approved; refusing approval action", acting_admin_id)
            raise Unauthorized()
        return admin

    def _require_account(self, account_id: int) -> AccountSummary:
        account = self._database.find_by_id(account_id)
        if account is None:
            raise NotFound("User not found")
        return account

    def _new_code(self) -> str:
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = self._code_factory().strip().upper()
            if not self._database.referral_code_exists(code):
                return code
        raise RuntimeError("Unable to generate a unique referral code")

    def approve(self, account_id: int, acting_admin_id: int) -> ReferralCodeRecord:
        self._require_admin(acting_admin_id)
        account = self._require_account(account_id)
        if account.status is AccountStatus.APPROVED:
            raise AlreadyApproved()

        code = self._new_code()
        expires_at = add_months(self._clock(), self._validity_months)
        record = self._database.approve_account(
            account_id,
            code=code,
            expires_at=expires_at,
            issued_by=acting_admin_id,
        )
        logger.info(
            "Administrator %s approved account %s; referral code valid until %s",
            acting_admin_id,
            account_id,
            expires_at.isoformat(),
        )

        self._notify(lambda: self._mailer.send_approval(account, code, expires_at), "approval", account)
        return record

    def reject(self, account_id: int, acting_admin_id: int) -> AccountSummary:
        self._require_admin(acting_admin_id)
        account = self._require_account(account_id)
        if account.status is AccountStatus.REJECTED:
            raise AlreadyRejected()

        updated = self._database.reject_account(account_id)
        logger.info("Administrator %s rejected account %s", acting_admin_id, account_id)

        self._notify(lambda: self._mailer.send_rejection(updated), "rejection", updated)
        return updated

    def _notify(self, send: Callable[[], bool], kind: str, account: AccountSummary) -> None:
        # Runs after the status change has committed.
        try:
            delivered = send()
        except Exception:
            logger.exception("Failed to send %s email to %s", kind, account.email)
            return
        if not delivered:
            logger.error("Failed to send %s email to %s", kind, account.email)


__all__ = [
    "REFERRAL_CODE_BYTES",
    "ReferralCodeIssuer",
    "add_months",
    "generate_referral_code",
]
