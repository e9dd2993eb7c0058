from __future__ import annotations

import smtplib
from datetime import datetime, timezone
from unittest import mock

import pytest

from jobboard.config import SMTPConfig
from jobboard.models import AccountStatus, AccountSummary, Role
from jobboard.notifications import (
    AccountMailer,
    LoggingNotifier,
    SMTPNotifier,
    build_notifier,
)


def _account() -> AccountSummary:
    now = datetime(2024, 1, 15, tzinfo=timezone.utc)
    return AccountSummary(
        id=7,
        email="alice@x.com",
        name="Alice",
        image=None,
        role=Role.JOB_SEEKER,
        status=AccountStatus.APPROVED,
        created_at=now,
        updated_at=now,
    )


def test_smtp_notifier_uses_starttls_and_login() -> None:
    factory = mock.MagicMock()
    client = factory.return_value.__enter__.return_value
    config = SMTPConfig(host="smtp.example.com", username="mailer@example.com", password="pw")

    notifier = SMTPNotifier(config, smtp_factory=factory)
    assert notifier.send("alice@x.com", "Hello", "text", "<p>html</p>")

    factory.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
    client.starttls.assert_called_once_with()
    client.login.assert_called_once_with("mailer@example.com", "pw")
    message = client.send_message.call_args.args[0]
    assert message["To"] == "alice@x.com"
    assert message["Subject"] == "Hello"
    sender = message["From"].addresses[0]
    assert sender.display_name == "Udyog Jagat"
    assert sender.addr_spec == "mailer@example.com"


def test_smtp_notifier_skips_starttls_on_implicit_tls() -> None:
    factory = mock.MagicMock()
    client = factory.return_value.__enter__.return_value

    notifier = SMTPNotifier(SMTPConfig(host="smtp.example.com", port=465), smtp_factory=factory)
    assert notifier.send("alice@x.com", "Hello", "text", "<p>html</p>")

    client.starttls.assert_not_called()
    client.login.assert_not_called()


def test_smtp_failures_are_reported_not_raised(caplog) -> None:
    factory = mock.MagicMock()
    factory.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("refused")

    notifier = SMTPNotifier(SMTPConfig(host="smtp.example.com"), smtp_factory=factory)

    assert notifier.send("alice@x.com", "Hello", "text", "<p>html</p>") is False
    assert "alice@x.com" in caplog.text


def test_smtp_notifier_requires_a_host() -> None:
    with pytest.raises(ValueError):
        SMTPNotifier(SMTPConfig())


def test_build_notifier_falls_back_to_logging() -> None:
    assert isinstance(build_notifier(SMTPConfig()), LoggingNotifier)
    assert isinstance(build_notifier(SMTPConfig(host="smtp.example.com")), SMTPNotifier)


def test_approval_email_carries_code_and_expiry() -> None:
    notifier = LoggingNotifier()
    mailer = AccountMailer(notifier, login_url="https://jobs.example.com/login")

    assert mailer.send_approval(
        _account(), "ABCDEF0123456789", datetime(2024, 2, 15, 9, 30, tzinfo=timezone.utc)
    )

    message = notifier.sent[-1]
    assert message.to == "alice@x.com"
    assert message.subject == "Your Udyog Jagat Account is Approved!"
    assert "ABCDEF0123456789" in message.text_body
    assert "ABCDEF0123456789" in message.html_body
    assert "15 Feb 2024" in message.text_body
    assert message.text_body.startswith("Dear Alice,")
    assert "https://jobs.example.com/login" in message.text_body


def test_rejection_email() -> None:
    notifier = LoggingNotifier()
    mailer = AccountMailer(notifier, login_url="https://jobs.example.com/login")

    assert mailer.send_rejection(_account())

    message = notifier.sent[-1]
    assert message.subject == "Your Udyog Jagat Registration Request Status"
    assert "Alice" in message.text_body
