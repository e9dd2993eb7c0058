"""Command-line interface for the Udyog Jagat job board service."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

from jobboard.config import Settings, load_settings
from jobboard.database import Database
from jobboard.errors import JobBoardError
from jobboard.models import AccountStatus, Role
from jobboard.notifications import AccountMailer, build_notifier
from jobboard.referrals import ReferralCodeIssuer

logger = logging.getLogger("jobboard.main")

MIN_ADMIN_PASSWORD_LENGTH = 12
_KNOWN_COMMANDS = {
    "serve",
    "init-db",
    "create-admin",
    "reset-admin-password",
    "list-accounts",
    "approve",
    "reject",
}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Udyog Jagat job board utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (defaults to JOBBOARD_CONFIG when set)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    serve_parser.add_argument(
        "--ssl-certfile",
        default=None,
        help="Path to the TLS certificate chain in PEM format",
    )
    serve_parser.add_argument(
        "--ssl-keyfile",
        default=None,
        help="Path to the TLS private key in PEM format",
    )

    subparsers.add_parser("init-db", help="Create the database schema")

    admin_parser = subparsers.add_parser("create-admin", help="Create an approved administrator account")
    admin_parser.add_argument("name", help="Display name for the administrator")
    admin_parser.add_argument("email", help="Unique email address used to sign in")

    reset_parser = subparsers.add_parser(
        "reset-admin-password", help="Set a new password for an administrator account"
    )
    reset_parser.add_argument("email", help="Email address of the administrator")

    list_parser = subparsers.add_parser("list-accounts", help="List accounts, optionally by status")
    list_parser.add_argument(
        "--status",
        default=None,
        choices=[status.value for status in AccountStatus],
        help="Only show accounts with this status",
    )

    for name, verb in (("approve", "Approve"), ("reject", "Reject")):
        action_parser = subparsers.add_parser(name, help=f"{verb} a registration request")
        action_parser.add_argument("account_id", type=int, help="Identifier of the account")
        action_parser.add_argument(
            "--admin",
            required=True,
            dest="admin_email",
            help="Email of the administrator performing the action",
        )

    args_list = list(argv) if argv is not None else sys.argv[1:]

    # Anything that is not a known subcommand is treated as options for `serve`.
    index = 0
    while index < len(args_list) and args_list[index] == "--config":
        index += 2
    remaining = args_list[index:]
    if not remaining:
        args_list = [*args_list, "serve"]
    elif remaining[0] not in _KNOWN_COMMANDS and not any(
        flag in args_list for flag in ("-h", "--help")
    ):
        args_list = [*args_list[:index], "serve", *remaining]

    return parser.parse_args(args_list)


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config).expanduser() if args.config else None
    return load_settings(config_path)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(
    settings: Settings,
    database: Database,
    *,
    host: str,
    port: int,
    ssl_certfile: str | None,
    ssl_keyfile: str | None,
) -> None:
    from jobboard.service import create_app
    import uvicorn

    if bool(ssl_certfile) ^ bool(ssl_keyfile):
        raise SystemExit("Both --ssl-certfile and --ssl-keyfile must be provided together.")

    protocol = "https" if ssl_certfile and ssl_keyfile else "http"
    logger.info("Starting job board on %s://%s:%s", protocol, host, port)

    app = create_app(settings=settings, database=database)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
        ssl_certfile=ssl_certfile,
        ssl_keyfile=ssl_keyfile,
    )


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass(f"Password (min {MIN_ADMIN_PASSWORD_LENGTH} characters): ")
        if len(password) < MIN_ADMIN_PASSWORD_LENGTH:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _create_admin(database: Database, name: str, email: str) -> int:
    password = _prompt_for_password()
    if password is None:
        print("Aborted creating administrator.", file=sys.stderr)
        return 1

    try:
        account = database.create_account(
            name.strip(),
            email,
            Role.ADMINISTRATOR,
            password=password,
            status=AccountStatus.APPROVED,
        )
    except JobBoardError as exc:
        print(f"Failed to create administrator: {exc.message}", file=sys.stderr)
        return 1

    print(f"Created administrator #{account.id}: {account.name} <{account.email}>")
    return 0


def _reset_admin_password(database: Database, email: str) -> int:
    account = database.find_by_email(email)
    if account is None or account.role is not Role.ADMINISTRATOR:
        print(f"No administrator found for {email}.", file=sys.stderr)
        return 1

    password = _prompt_for_password()
    if password is None:
        print("Aborted password reset.", file=sys.stderr)
        return 1

    database.set_password(account.id, password)
    logger.info("Password reset for administrator %s", account.id)
    print(f"Password updated for administrator #{account.id} <{account.email}>")
    return 0


def _list_accounts(database: Database, status: str | None) -> int:
    accounts = database.list_accounts(AccountStatus.parse(status) if status else None)
    if not accounts:
        print("No accounts found.")
        return 0

    print(f"{len(accounts)} account(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  {'Role':<14}  Status")
    print("-" * 90)
    for account in accounts:
        print(
            f"{account.id:>4}  {(account.name or ''):<24}  {account.email:<32}  "
            f"{account.role.value:<14}  {account.status.value}"
        )
    return 0


def _build_issuer(settings: Settings, database: Database) -> ReferralCodeIssuer:
    mailer = AccountMailer(
        build_notifier(settings.smtp),
        login_url=f"{settings.public_url.rstrip('/')}/login",
    )
    return ReferralCodeIssuer(
        database,
        mailer,
        validity_months=settings.referral_validity_months,
    )


def _decide(settings: Settings, database: Database, command: str, account_id: int, admin_email: str) -> int:
    admin = database.find_by_email(admin_email)
    if admin is None:
        print(f"No account found for {admin_email}.", file=sys.stderr)
        return 1

    issuer = _build_issuer(settings, database)
    try:
        if command == "approve":
            record = issuer.approve(account_id, admin.id)
            print(f"Approved account #{account_id}; referral code expires {record.expires_at.isoformat()}")
        else:
            account = issuer.reject(account_id, admin.id)
            print(f"Rejected account #{account.id} <{account.email}>")
    except JobBoardError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _load_settings(args)
    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(
            settings,
            database,
            host=args.host,
            port=args.port,
            ssl_certfile=args.ssl_certfile,
            ssl_keyfile=args.ssl_keyfile,
        )
        return 0
    if args.command == "init-db":
        print("Database initialisation complete.")
        return 0
    if args.command == "create-admin":
        return _create_admin(database, args.name, args.email)
    if args.command == "reset-admin-password":
        return _reset_admin_password(database, args.email)
    if args.command == "list-accounts":
        return _list_accounts(database, args.status)
    return _decide(settings, database, args.command, args.account_id, args.admin_email)


if __name__ == "__main__":
    raise SystemExit(main())
