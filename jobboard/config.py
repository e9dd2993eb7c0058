"""Configuration management for the job board service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from email.utils import formataddr
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

ENV_PREFIX = "JOBBOARD_"

DEFAULT_SESSION_LIFETIME_DAYS = 30
DEFAULT_REFERRAL_VALIDITY_MONTHS = 1


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "jobboard.sqlite3").resolve(strict=False)


def default_route_table_path() -> Path:
    return Path(__file__).resolve().parent / "routes.yaml"


def _env_flag(value: Optional[object], default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SMTPConfig:
    """Outbound mail settings. ``host`` unset means mail is only logged."""

    host: Optional[str] = None
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    sender_name: str = "Udyog Jagat"
    sender_address: Optional[str] = None
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    @property
    def use_ssl(self) -> bool:
        return self.port == 465

    @property
    def from_header(self) -> str:
        address = self.sender_address or self.username or "no-reply@localhost"
        return formataddr((self.sender_name, address))


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and injected."""

    database_path: Path
    session_secret: Optional[str] = None
    session_lifetime_days: int = DEFAULT_SESSION_LIFETIME_DAYS
    referral_validity_months: int = DEFAULT_REFERRAL_VALIDITY_MONTHS
    secure_cookies: bool = False
    public_url: str = "http://localhost:8000"
    route_table_path: Path = field(default_factory=default_route_table_path)
    trusted_proxies: Tuple[str, ...] = ()
    smtp: SMTPConfig = field(default_factory=SMTPConfig)

    def require_session_secret(self) -> str:
        if not self.session_secret:
            raise RuntimeError(
                f"{ENV_PREFIX}SESSION_SECRET must be configured to issue login sessions"
            )
        return self.session_secret

    def with_overrides(self, **changes: object) -> "Settings":
        return replace(self, **changes)


def _smtp_from_mapping(data: Mapping[str, object]) -> SMTPConfig:
    port_raw = data.get("port")
    return SMTPConfig(
        host=str(data["host"]) if data.get("host") else None,
        port=int(port_raw) if port_raw else 587,
        username=str(data["username"]) if data.get("username") else None,
        password=str(data["password"]) if data.get("password") else None,
        sender_name=str(data.get("sender_name") or "Udyog Jagat"),
        sender_address=str(data["sender_address"]) if data.get("sender_address") else None,
    )


def _read_yaml(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def _environment_values(environ: Mapping[str, str]) -> Dict[str, object]:
    def get(name: str) -> Optional[str]:
        value = environ.get(ENV_PREFIX + name)
        if value is None or not value.strip():
            return None
        return value.strip()

    values: Dict[str, object] = {}
    simple = {
        "database_path": "DB_PATH",
        "session_secret": "SESSION_SECRET",
        "session_lifetime_days": "SESSION_LIFETIME_DAYS",
        "referral_validity_months": "REFERRAL_VALIDITY_MONTHS",
        "secure_cookies": "SESSION_SECURE",
        "public_url": "PUBLIC_URL",
        "route_table_path": "ROUTE_TABLE",
        "trusted_proxies": "TRUSTED_PROXIES",
    }
    for key, env_name in simple.items():
        value = get(env_name)
        if value is not None:
            values[key] = value

    smtp: Dict[str, object] = {}
    for key, env_name in {
        "host": "EMAIL_HOST",
        "port": "EMAIL_PORT",
        "username": "EMAIL_USER",
        "password": "EMAIL_PASS",
        "sender_name": "EMAIL_SENDER_NAME",
        "sender_address": "EMAIL_FROM",
    }.items():
        value = get(env_name)
        if value is not None:
            smtp[key] = value
    if smtp:
        values["smtp"] = smtp
    return values


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from an optional YAML file and the environment.

    Environment variables win over the YAML file so deployments can override
    a checked-in configuration.
    """

    env = os.environ if environ is None else environ
    if config_path is None and env.get(ENV_PREFIX + "CONFIG"):
        config_path = Path(env[ENV_PREFIX + "CONFIG"]).expanduser()

    merged: Dict[str, object] = {}
    if config_path is not None:
        merged.update(_read_yaml(config_path))

    env_values = _environment_values(env)
    smtp_values: Dict[str, object] = {}
    if isinstance(merged.get("smtp"), dict):
        smtp_values.update(merged["smtp"])  # type: ignore[arg-type]
    if isinstance(env_values.get("smtp"), dict):
        smtp_values.update(env_values.pop("smtp"))  # type: ignore[arg-type]
    merged.update(env_values)

    proxies_raw = merged.get("trusted_proxies") or ()
    if isinstance(proxies_raw, str):
        proxies = tuple(item.strip() for item in proxies_raw.split(",") if item.strip())
    else:
        proxies = tuple(str(item) for item in proxies_raw)  # type: ignore[union-attr]

    route_table = merged.get("route_table_path")

    return Settings(
        database_path=resolve_database_path(
            str(merged["database_path"]) if merged.get("database_path") else None
        ),
        session_secret=str(merged["session_secret"]) if merged.get("session_secret") else None,
        session_lifetime_days=int(merged.get("session_lifetime_days") or DEFAULT_SESSION_LIFETIME_DAYS),
        referral_validity_months=int(
            merged.get("referral_validity_months") or DEFAULT_REFERRAL_VALIDITY_MONTHS
        ),
        secure_cookies=_env_flag(merged.get("secure_cookies"), False),
        public_url=str(merged.get("public_url") or "http://localhost:8000").rstrip("/"),
        route_table_path=(
            Path(str(route_table)).expanduser() if route_table else default_route_table_path()
        ),
        trusted_proxies=proxies,
        smtp=_smtp_from_mapping(smtp_values),
    )


__all__ = [
    "ENV_PREFIX",
    "SMTPConfig",
    "Settings",
    "default_route_table_path",
    "load_settings",
    "resolve_database_path",
]
