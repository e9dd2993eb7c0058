from pathlib import Path

import pytest

import main
from main import _parse_args
from jobboard.authenticator import Authenticator
from jobboard.database import Database, verify_password
from jobboard.errors import NoPasswordConfigured
from jobboard.models import AccountStatus, Role


@pytest.fixture()
def db_env(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "cli.sqlite3"
    for name in ("JOBBOARD_CONFIG", "JOBBOARD_EMAIL_HOST"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("JOBBOARD_DB_PATH", str(path))
    return path


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"
    assert args.port == 8000


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_config_may_precede_the_subcommand() -> None:
    args = _parse_args(["--config", "jobboard.yaml", "list-accounts", "--status", "Pending"])
    assert args.command == "list-accounts"
    assert args.config == "jobboard.yaml"
    assert args.status == "Pending"

    assert _parse_args(["--config", "jobboard.yaml"]).command == "serve"


def test_account_subcommands_parse() -> None:
    args = _parse_args(["create-admin", "Root", "root@example.com"])
    assert (args.command, args.name, args.email) == ("create-admin", "Root", "root@example.com")

    args = _parse_args(["reset-admin-password", "root@example.com"])
    assert (args.command, args.email) == ("reset-admin-password", "root@example.com")

    args = _parse_args(["approve", "5", "--admin", "root@example.com"])
    assert (args.command, args.account_id, args.admin_email) == ("approve", 5, "root@example.com")

    with pytest.raises(SystemExit):
        _parse_args(["reject", "5"])


def test_create_admin_and_list_accounts(db_env: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(main, "getpass", lambda prompt="": "a-long-admin-password")

    assert main.main(["create-admin", "Root", "root@example.com"]) == 0

    stored = Database(db_env).find_with_secrets_by_email("root@example.com")
    assert stored.role is Role.ADMINISTRATOR
    assert stored.status is AccountStatus.APPROVED
    assert verify_password("a-long-admin-password", stored.password_hash)

    assert main.main(["list-accounts"]) == 0
    assert "root@example.com" in capsys.readouterr().out

    assert main.main(["create-admin", "Root", "root@example.com"]) == 1


def test_reset_admin_password_enables_password_login(db_env: Path, monkeypatch) -> None:
    database = Database(db_env)
    database.initialize()
    admin = database.create_account(
        "Root", "root@example.com", Role.ADMINISTRATOR, status=AccountStatus.APPROVED
    )
    database.create_account("Alice", "alice@x.com", Role.JOB_SEEKER)
    authenticator = Authenticator(database)
    with pytest.raises(NoPasswordConfigured):
        authenticator.authenticate("root@example.com", password="a-brand-new-password")

    monkeypatch.setattr(main, "getpass", lambda prompt="": "a-brand-new-password")
    assert main.main(["reset-admin-password", "ROOT@example.com"]) == 0

    identity = authenticator.authenticate("root@example.com", password="a-brand-new-password")
    assert identity.id == admin.id

    assert main.main(["reset-admin-password", "alice@x.com"]) == 1
    assert database.find_with_secrets_by_email("alice@x.com").password_hash is None
    assert main.main(["reset-admin-password", "ghost@example.com"]) == 1


def test_short_admin_password_aborts(db_env: Path, monkeypatch) -> None:
    monkeypatch.setattr(main, "getpass", lambda prompt="": "short")

    assert main.main(["create-admin", "Root", "root@example.com"]) == 1
    assert Database(db_env).find_by_email("root@example.com") is None


def test_approve_and_reject_from_the_command_line(db_env: Path, capsys) -> None:
    database = Database(db_env)
    database.initialize()
    admin = database.create_account(
        "Root", "root@example.com", Role.ADMINISTRATOR, status=AccountStatus.APPROVED
    )
    alice = database.create_account("Alice", "alice@x.com", Role.JOB_SEEKER)
    bob = database.create_account("Bob", "bob@x.com", Role.REFERRER)

    assert main.main(["approve", str(alice.id), "--admin", admin.email]) == 0
    assert "Approved account" in capsys.readouterr().out
    assert database.find_with_secrets_by_id(alice.id).referral_code

    assert main.main(["reject", str(bob.id), "--admin", admin.email]) == 0
    assert database.find_by_id(bob.id).status is AccountStatus.REJECTED

    assert main.main(["approve", str(alice.id), "--admin", admin.email]) == 1
    assert "already approved" in capsys.readouterr().err

    assert main.main(["approve", str(alice.id), "--admin", "nobody@example.com"]) == 1
