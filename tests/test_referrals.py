"""Approval workflow: referral code issuance, rejection and notifications."""

from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest import mock

from jobboard.authenticator import Authenticator
from jobboard.database import Database
from jobboard.errors import (
    AccountPending,
    AlreadyApproved,
    AlreadyRejected,
    InvalidCredentials,
    NotFound,
    ReferralExpired,
    Unauthorized,
)
from jobboard.models import AccountStatus, Role
from jobboard.notifications import AccountMailer, LoggingNotifier
from jobboard.referrals import ReferralCodeIssuer, add_months, generate_referral_code

from conftest import FrozenClock


class FailingNotifier:
    def __init__(self, *, raise_error: bool) -> None:
        self.raise_error = raise_error
        self.calls = 0

    def send(self, to: str, subject: str, text_body: str, html_body: str) -> bool:
        self.calls += 1
        if self.raise_error:
            raise ConnectionError("relay unreachable")
        return False


class ReferralIssuerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.database = Database(Path(self._tempdir.name) / "jobboard.sqlite3")
        self.database.initialize()
        self.clock = FrozenClock(datetime(2024, 1, 31, 8, 0, tzinfo=timezone.utc))
        self.notifier = LoggingNotifier()
        self.mailer = AccountMailer(self.notifier, login_url="https://jobs.example.com/login")
        self.issuer = ReferralCodeIssuer(self.database, self.mailer, clock=self.clock)
        self.authenticator = Authenticator(self.database, clock=self.clock)

        self.admin = self.database.create_account(
            "Admin",
            "admin@admin.com",
            Role.ADMINISTRATOR,
            password="correct-horse-battery",
            status=AccountStatus.APPROVED,
        )
        self.alice = self.database.create_account("Alice", "alice@x.com", Role.JOB_SEEKER)
        self.bob = self.database.create_account("Bob", "bob@x.com", Role.JOB_POSTER)

    def tearDown(self) -> None:
        self._tempdir.cleanup()

    def _stored(self, account_id: int):
        account = self.database.find_with_secrets_by_id(account_id)
        assert account is not None
        return account

    def test_registration_then_login_is_pending(self) -> None:
        with self.assertRaises(AccountPending):
            self.authenticator.authenticate("alice@x.com", referral_code="ANYCODE")

    def test_approval_issues_code_and_allows_login(self) -> None:
        record = self.issuer.approve(self.alice.id, self.admin.id)

        stored = self._stored(self.alice.id)
        self.assertIs(stored.status, AccountStatus.APPROVED)
        self.assertEqual(stored.referral_code, record.code)
        self.assertEqual(len(record.code), 16)
        self.assertEqual(record.code, record.code.upper())
        self.assertEqual(record.issued_by, self.admin.id)
        self.assertEqual(record.account_id, self.alice.id)
        self.assertTrue(record.active)
        # January 31st plus one calendar month clamps to the end of February.
        self.assertEqual(record.expires_at, datetime(2024, 2, 29, 8, 0, tzinfo=timezone.utc))
        self.assertEqual(stored.referral_expires_at, record.expires_at)

        identity = self.authenticator.authenticate("alice@x.com", referral_code=record.code)
        self.assertIs(identity.role, Role.JOB_SEEKER)

    def test_approval_email_carries_code_and_expiry(self) -> None:
        record = self.issuer.approve(self.alice.id, self.admin.id)

        self.assertEqual(len(self.notifier.sent), 1)
        message = self.notifier.sent[0]
        self.assertEqual(message.to, "alice@x.com")
        self.assertEqual(message.subject, "Your Udyog Jagat Account is Approved!")
        self.assertIn(record.code, message.text_body)
        self.assertIn(record.code, message.html_body)
        self.assertIn("29 Feb 2024", message.text_body)

    def test_second_approval_does_not_rotate_code(self) -> None:
        first = self.issuer.approve(self.alice.id, self.admin.id)

        with self.assertRaises(AlreadyApproved):
            self.issuer.approve(self.alice.id, self.admin.id)

        self.assertEqual(self._stored(self.alice.id).referral_code, first.code)
        self.assertEqual(len(self.database.list_referral_codes(self.alice.id)), 1)

    def test_store_rejects_double_issue_when_precheck_is_bypassed(self) -> None:
        self.issuer.approve(self.alice.id, self.admin.id)

        with self.assertRaises(AlreadyApproved):
            self.database.approve_account(
                self.alice.id,
                code="FFFFFFFFFFFFFFFF",
                expires_at=self.clock() + timedelta(days=30),
                issued_by=self.admin.id,
            )
        self.assertNotEqual(self._stored(self.alice.id).referral_code, "FFFFFFFFFFFFFFFF")

    def test_rejection_revokes_code(self) -> None:
        record = self.issuer.approve(self.bob.id, self.admin.id)
        self.authenticator.authenticate("bob@x.com", referral_code=record.code)

        summary = self.issuer.reject(self.bob.id, self.admin.id)

        self.assertIs(summary.status, AccountStatus.REJECTED)
        stored = self._stored(self.bob.id)
        self.assertIsNone(stored.referral_code)
        self.assertIsNone(stored.referral_expires_at)
        self.assertFalse(any(item.active for item in self.database.list_referral_codes(self.bob.id)))
        with self.assertRaises(InvalidCredentials):
            self.authenticator.authenticate("bob@x.com", referral_code=record.code)

    def test_rejection_sends_status_email(self) -> None:
        self.issuer.reject(self.bob.id, self.admin.id)
        self.assertEqual(self.notifier.sent[-1].subject, "Your Udyog Jagat Registration Request Status")

    def test_rejecting_twice_is_a_conflict(self) -> None:
        self.issuer.reject(self.bob.id, self.admin.id)
        with self.assertRaises(AlreadyRejected):
            self.issuer.reject(self.bob.id, self.admin.id)

    def test_reapproval_issues_a_fresh_code(self) -> None:
        first = self.issuer.approve(self.alice.id, self.admin.id)
        self.issuer.reject(self.alice.id, self.admin.id)
        second = self.issuer.approve(self.alice.id, self.admin.id)

        self.assertNotEqual(first.code, second.code)
        self.assertEqual(self._stored(self.alice.id).referral_code, second.code)
        with self.assertRaises(InvalidCredentials):
            self.authenticator.authenticate("alice@x.com", referral_code=first.code)
        self.authenticator.authenticate("alice@x.com", referral_code=second.code)

        records = self.database.list_referral_codes(self.alice.id)
        self.assertEqual([item.code for item in records], [first.code, second.code])
        self.assertEqual([item.active for item in records], [False, True])

    def test_code_collisions_are_retried(self) -> None:
        codes = iter(["AAAAAAAAAAAAAAAA", "AAAAAAAAAAAAAAAA", "BBBBBBBBBBBBBBBB"])
        issuer = ReferralCodeIssuer(
            self.database,
            self.mailer,
            clock=self.clock,
            code_factory=lambda: next(codes),
        )
        self.assertEqual(issuer.approve(self.alice.id, self.admin.id).code, "AAAAAAAAAAAAAAAA")
        self.assertEqual(issuer.approve(self.bob.id, self.admin.id).code, "BBBBBBBBBBBBBBBB")

    def test_login_after_expiry_fails(self) -> None:
        record = self.issuer.approve(self.alice.id, self.admin.id)
        self.clock.advance(days=40)

        with self.assertRaises(ReferralExpired):
            self.authenticator.authenticate("alice@x.com", referral_code=record.code)

    def test_non_admin_cannot_approve(self) -> None:
        record = self.issuer.approve(self.bob.id, self.admin.id)
        self.assertTrue(record.code)

        with self.assertRaises(Unauthorized):
            self.issuer.approve(self.alice.id, self.bob.id)
        with self.assertRaises(Unauthorized):
            self.issuer.reject(self.alice.id, 9999)
        self.assertIs(self._stored(self.alice.id).status, AccountStatus.PENDING)

    def test_unapproved_admin_cannot_approve(self) -> None:
        pending_admin = self.database.create_account(
            "New Admin", "new-admin@x.com", Role.ADMINISTRATOR, password="pw-for-new-admin"
        )
        with self.assertRaises(Unauthorized):
            self.issuer.approve(self.alice.id, pending_admin.id)

    def test_unknown_account(self) -> None:
        with self.assertRaises(NotFound):
            self.issuer.approve(4242, self.admin.id)
        with self.assertRaises(NotFound):
            self.issuer.reject(4242, self.admin.id)

    def test_notification_failure_keeps_approval(self) -> None:
        for raise_error in (True, False):
            with self.subTest(raise_error=raise_error):
                target = self.database.create_account(
                    "Carol", f"carol-{raise_error}@x.com", Role.REFERRER
                )
                notifier = FailingNotifier(raise_error=raise_error)
                issuer = ReferralCodeIssuer(
                    self.database,
                    AccountMailer(notifier, login_url="https://jobs.example.com/login"),
                    clock=self.clock,
                )
                with self.assertLogs("jobboard.referrals", level="ERROR"):
                    record = issuer.approve(target.id, self.admin.id)

                self.assertEqual(notifier.calls, 1)
                self.assertEqual(self._stored(target.id).referral_code, record.code)
                self.assertIs(self._stored(target.id).status, AccountStatus.APPROVED)

    def test_mailer_exception_does_not_escape_rejection(self) -> None:
        with mock.patch.object(self.mailer, "send_rejection", side_effect=RuntimeError("template error")):
            with self.assertLogs("jobboard.referrals", level="ERROR"):
                summary = self.issuer.reject(self.bob.id, self.admin.id)
        self.assertIs(summary.status, AccountStatus.REJECTED)


class ReferralHelpersTests(unittest.TestCase):
    def test_generated_codes_are_upper_hex(self) -> None:
        code = generate_referral_code()
        self.assertEqual(len(code), 16)
        int(code, 16)
        self.assertEqual(code, code.upper())
        self.assertNotEqual(code, generate_referral_code())

    def test_add_months_clamps_day(self) -> None:
        start = datetime(2023, 1, 31, tzinfo=timezone.utc)
        self.assertEqual(add_months(start, 1), datetime(2023, 2, 28, tzinfo=timezone.utc))
        self.assertEqual(add_months(start, 12), datetime(2024, 1, 31, tzinfo=timezone.utc))
        self.assertEqual(
            add_months(datetime(2023, 12, 15, 10, 0, tzinfo=timezone.utc), 1),
            datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
        )


if __name__ == "__main__":
    unittest.main()
