"""Outbound account notifications."""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import SMTPConfig
from .models import AccountSummary

logger = logging.getLogger("jobboard.notifications")

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates" / "email"


class Notifier(Protocol):
    def send(self, to: str, subject: str, text_body: str, html_body: str) -> bool:
        ...


@dataclass(frozen=True)
class OutgoingMessage:
    to: str
    subject: str
    text_body: str
    html_body: str


class SMTPNotifier:
    """Deliver mail through an SMTP relay. Failures are reported, not raised."""

    def __init__(
        self,
        config: SMTPConfig,
        *,
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ) -> None:
        if not config.enabled:
            raise ValueError("SMTP host must be configured to send mail")
        self._config = config
        if smtp_factory is None:
            smtp_factory = smtplib.SMTP_SSL if config.use_ssl else smtplib.SMTP
        self._smtp_factory = smtp_factory

    def send(self, to: str, subject: str, text_body: str, html_body: str) -> bool:
        message = EmailMessage()
        message["From"] = self._config.from_header
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")

        try:
            with self._smtp_factory(
                self._config.host, self._config.port, timeout=self._config.timeout
            ) as client:
                if not self._config.use_ssl:
                    client.starttls()
                if self._config.username and self._config.password:
                    client.login(self._config.username, self._config.password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Error sending email to %s: %s", to, exc)
            return False

        logger.info("Message sent to %s (%s)", to, subject)
        return True


class LoggingNotifier:
    """Record messages in memory and the log instead of delivering them."""

    def __init__(self) -> None:
        self.sent: List[OutgoingMessage] = []

    def send(self, to: str, subject: str, text_body: str, html_body: str) -> bool:
        self.sent.append(OutgoingMessage(to, subject, text_body, html_body))
        logger.info("Email delivery disabled; would send %r to %s", subject, to)
        return True


def build_notifier(config: SMTPConfig) -> Notifier:
    if config.enabled:
        return SMTPNotifier(config)
    logger.warning("No SMTP host configured. Account emails will only be logged.")
    return LoggingNotifier()


class AccountMailer:
    """Render and send the approval and rejection emails."""

    def __init__(
        self,
        notifier: Notifier,
        *,
        login_url: str,
        site_name: str = "Udyog Jagat",
    ) -> None:
        self._notifier = notifier
        self._login_url = login_url
        self._site_name = site_name
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )

    def _render(self, template: str, **context: object) -> tuple[str, str]:
        context.setdefault("site_name", self._site_name)
        context.setdefault("login_url", self._login_url)
        text = self._env.get_template(f"{template}.txt").render(**context)
        html = self._env.get_template(f"{template}.html").render(**context)
        return text, html

    def send_approval(self, account: AccountSummary, code: str, expires_at: Optional[datetime]) -> bool:
        expiry_text = expires_at.strftime("%d %b %Y %H:%M %Z") if expires_at else "no expiry"
        text, html = self._render(
            "approved",
            name=account.name or "User",
            code=code,
            expires_at=expiry_text,
        )
        return self._notifier.send(
            account.email,
            f"Your {self._site_name} Account is Approved!",
            text,
            html,
        )

    def send_rejection(self, account: AccountSummary) -> bool:
        text, html = self._render("rejected", name=account.name or "User")
        return self._notifier.send(
            account.email,
            f"Your {self._site_name} Registration Request Status",
            text,
            html,
        )


__all__ = [
    "AccountMailer",
    "LoggingNotifier",
    "Notifier",
    "OutgoingMessage",
    "SMTPNotifier",
    "build_notifier",
]
