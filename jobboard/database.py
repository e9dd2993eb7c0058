"""SQLite-backed persistence for accounts, referral codes and job postings."""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from passlib.context import CryptContext

from .errors import (
    AlreadyApproved,
    AlreadyRejected,
    DuplicateAccount,
    DuplicateApplication,
    NotFound,
    StoreUnavailable,
    ValidationFailed,
)
from .models import (
    AccountStatus,
    AccountSummary,
    AccountWithSecrets,
    Applicant,
    Company,
    JobPost,
    ReferralCodeRecord,
    Role,
)

logger = logging.getLogger("jobboard.database")

_pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

JOB_SORT_COLUMNS: Dict[str, str] = {
    "createdAt": "j.created_at",
    "title": "j.title",
    "location": "j.location",
}


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password must not be empty")
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Constant-time check of ``password`` against a stored hash."""

    try:
        return _pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        return False


class Database:
    """Credential store and job board persistence on top of SQLite.

    One instance is created per process and shared by reference. Every
    operation opens its own short-lived connection, so the object holds no
    connection state between requests.
    """

    def __init__(self, path: Path, *, timeout: float = 5.0) -> None:
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("Unable to open database %s: %s", self._path, exc)
            raise StoreUnavailable() from exc

        try:
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.DatabaseError as exc:
            conn.rollback()
            logger.error("Database operation failed: %s", exc)
            raise StoreUnavailable() from exc
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT,
                    image TEXT,
                    role TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'Pending',
                    password_hash TEXT,
                    referral_code TEXT,
                    referral_expires_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS referral_codes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    code TEXT NOT NULL UNIQUE,
                    issued_by INTEGER NOT NULL REFERENCES accounts(id),
                    account_id INTEGER NOT NULL REFERENCES accounts(id),
                    expires_at TEXT,
                    active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS companies (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    description TEXT,
                    industry TEXT,
                    website TEXT,
                    logo_url TEXT,
                    registered_by INTEGER REFERENCES accounts(id),
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS job_posts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    company_id INTEGER NOT NULL REFERENCES companies(id),
                    posted_by INTEGER NOT NULL REFERENCES accounts(id),
                    location TEXT NOT NULL,
                    job_type TEXT NOT NULL,
                    experience_level TEXT NOT NULL,
                    salary_range TEXT,
                    skills_required TEXT NOT NULL DEFAULT '[]',
                    application_deadline TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS job_applications (
                    job_id INTEGER NOT NULL REFERENCES job_posts(id) ON DELETE CASCADE,
                    account_id INTEGER NOT NULL REFERENCES accounts(id),
                    applied_at TEXT NOT NULL,
                    PRIMARY KEY (job_id, account_id)
                );

                CREATE INDEX IF NOT EXISTS idx_accounts_status ON accounts(status);
                CREATE INDEX IF NOT EXISTS idx_referral_codes_account ON referral_codes(account_id);
                CREATE INDEX IF NOT EXISTS idx_job_posts_posted_by ON job_posts(posted_by);
                """
            )

            columns = {
                row["name"]
                for row in conn.execute("PRAGMA table_info(accounts)").fetchall()
            }
            if "image" not in columns:
                conn.execute("ALTER TABLE accounts ADD COLUMN image TEXT")

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def create_account(
        self,
        name: Optional[str],
        email: str,
        role: Role,
        *,
        password: Optional[str] = None,
        status: AccountStatus = AccountStatus.PENDING,
    ) -> AccountSummary:
        """Insert a new account. Only Administrators store a password hash."""

        normalized_email = normalize_email(email)
        if not normalized_email:
            raise ValidationFailed("Email is required")

        password_hash = None
        if role is Role.ADMINISTRATOR and password:
            password_hash = hash_password(password)

        now = _serialize_datetime(_current_timestamp())
        with self._transaction() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO accounts (email, name, role, status, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        normalized_email,
                        name.strip() if name else None,
                        role.value,
                        status.value,
                        password_hash,
                        now,
                        now,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateAccount() from exc
            account_id = cursor.lastrowid

        account = self.find_by_id(account_id)
        if account is None:
            raise RuntimeError("Failed to load account after creation")
        return account

    def find_by_email(self, email: str) -> Optional[AccountSummary]:
        secrets_view = self.find_with_secrets_by_email(email)
        return secrets_view.summary() if secrets_view is not None else None

    def find_with_secrets_by_email(self, email: str) -> Optional[AccountWithSecrets]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_account_with_secrets(row)

    def find_by_id(self, account_id: int) -> Optional[AccountSummary]:
        secrets_view = self.find_with_secrets_by_id(account_id)
        return secrets_view.summary() if secrets_view is not None else None

    def find_with_secrets_by_id(self, account_id: int) -> Optional[AccountWithSecrets]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_account_with_secrets(row)

    def list_accounts(self, status: Optional[AccountStatus] = None) -> List[AccountSummary]:
        query = "SELECT * FROM accounts"
        params: List[object] = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)
        query += " ORDER BY created_at, id"
        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_account_with_secrets(row).summary() for row in rows]

    def update_account_status(
        self,
        account_id: int,
        status: AccountStatus,
        *,
        unless: Optional[AccountStatus] = None,
    ) -> bool:
        """Set ``status``. With ``unless`` the write only happens if the current
        status differs from it. Returns ``True`` when a row changed."""

        query = "UPDATE accounts SET status = ?, updated_at = ? WHERE id = ?"
        params: List[object] = [status.value, _serialize_datetime(_current_timestamp()), account_id]
        if unless is not None:
            query += " AND status != ?"
            params.append(unless.value)
        with self._transaction() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount > 0

    def update_referral(
        self,
        account_id: int,
        code: Optional[str],
        expires_at: Optional[datetime],
    ) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE accounts
                   SET referral_code = ?, referral_expires_at = ?, updated_at = ?
                 WHERE id = ?
                """,
                (
                    code,
                    _serialize_datetime(expires_at),
                    _serialize_datetime(_current_timestamp()),
                    account_id,
                ),
            )
            return cursor.rowcount > 0

    def approve_account(
        self,
        account_id: int,
        *,
        code: str,
        expires_at: Optional[datetime],
        issued_by: int,
    ) -> ReferralCodeRecord:
        """Mark the account Approved, bind ``code`` and record it, atomically.

        The status update is conditional on the account not already being
        Approved, so two concurrent approvals cannot both issue a code.
        """

        now = _current_timestamp()
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE accounts
                   SET status = ?, referral_code = ?, referral_expires_at = ?, updated_at = ?
                 WHERE id = ? AND status != ?
                """,
                (
                    AccountStatus.APPROVED.value,
                    code,
                    _serialize_datetime(expires_at),
                    _serialize_datetime(now),
                    account_id,
                    AccountStatus.APPROVED.value,
                ),
            )
            if cursor.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM accounts WHERE id = ?", (account_id,)
                ).fetchone()
                if exists is None:
                    raise NotFound("User not found")
                raise AlreadyApproved()

            conn.execute(
                "UPDATE referral_codes SET active = 0 WHERE account_id = ?",
                (account_id,),
            )
            inserted = conn.execute(
                """
                INSERT INTO referral_codes (code, issued_by, account_id, expires_at, active, created_at)
                VALUES (?, ?, ?, ?, 1, ?)
                """,
                (
                    code,
                    issued_by,
                    account_id,
                    _serialize_datetime(expires_at),
                    _serialize_datetime(now),
                ),
            )
            record_id = inserted.lastrowid
            row = conn.execute(
                "SELECT * FROM referral_codes WHERE id = ?", (record_id,)
            ).fetchone()

        return self._row_to_referral_code(row)

    def reject_account(self, account_id: int) -> AccountSummary:
        """Mark the account Rejected and revoke its referral code, atomically."""

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE accounts
                   SET status = ?, referral_code = NULL, referral_expires_at = NULL, updated_at = ?
                 WHERE id = ? AND status != ?
                """,
                (
                    AccountStatus.REJECTED.value,
                    _serialize_datetime(_current_timestamp()),
                    account_id,
                    AccountStatus.REJECTED.value,
                ),
            )
            if cursor.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM accounts WHERE id = ?", (account_id,)
                ).fetchone()
                if exists is None:
                    raise NotFound("User not found")
                raise AlreadyRejected()

            conn.execute(
                "UPDATE referral_codes SET active = 0 WHERE account_id = ?",
                (account_id,),
            )

        account = self.find_by_id(account_id)
        if account is None:
            raise NotFound("User not found")
        return account

    def referral_code_exists(self, code: str) -> bool:
        with self._transaction() as conn:
            row = conn.execute("SELECT 1 FROM referral_codes WHERE code = ?", (code,)).fetchone()
        return row is not None

    def list_referral_codes(self, account_id: int) -> List[ReferralCodeRecord]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM referral_codes WHERE account_id = ? ORDER BY id",
                (account_id,),
            ).fetchall()
        return [self._row_to_referral_code(row) for row in rows]

    def set_password(self, account_id: int, password: str) -> None:
        password_hash = hash_password(password)
        with self._transaction() as conn:
            conn.execute(
                "UPDATE accounts SET password_hash = ?, updated_at = ? WHERE id = ?",
                (password_hash, _serialize_datetime(_current_timestamp()), account_id),
            )

    def update_profile(
        self,
        account_id: int,
        *,
        name: Optional[str] = None,
        image: Optional[str] = None,
    ) -> AccountSummary:
        updates: List[str] = []
        values: List[object] = []
        if name is not None:
            updates.append("name = ?")
            values.append(name.strip() or None)
        if image is not None:
            updates.append("image = ?")
            values.append(image.strip() or None)
        if not updates:
            raise ValidationFailed("No fields provided for update")

        updates.append("updated_at = ?")
        values.append(_serialize_datetime(_current_timestamp()))
        values.append(account_id)
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE accounts SET {', '.join(updates)} WHERE id = ?",
                values,
            )
            if cursor.rowcount == 0:
                raise NotFound("User profile not found")

        account = self.find_by_id(account_id)
        if account is None:
            raise NotFound("User profile not found")
        return account

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------
    def list_companies(self) -> List[Company]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM companies ORDER BY name").fetchall()
        return [self._row_to_company(row) for row in rows]

    def get_company(self, company_id: int) -> Optional[Company]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_company(row)

    def find_or_create_company(self, name: str, *, registered_by: Optional[int]) -> Company:
        cleaned = name.strip()
        if not cleaned:
            raise ValidationFailed("Company name must not be empty")

        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM companies WHERE name = ?", (cleaned,)).fetchone()
            if row is None:
                cursor = conn.execute(
                    "INSERT INTO companies (name, registered_by, created_at) VALUES (?, ?, ?)",
                    (cleaned, registered_by, _serialize_datetime(_current_timestamp())),
                )
                row = conn.execute(
                    "SELECT * FROM companies WHERE id = ?", (cursor.lastrowid,)
                ).fetchone()
        return self._row_to_company(row)

    # ------------------------------------------------------------------
    # Job posts
    # ------------------------------------------------------------------
    def create_job_post(
        self,
        *,
        title: str,
        description: str,
        company_id: int,
        posted_by: int,
        location: str,
        job_type: str,
        experience_level: str,
        salary_range: Optional[str] = None,
        skills_required: Sequence[str] = (),
        application_deadline: Optional[datetime] = None,
    ) -> JobPost:
        now = _serialize_datetime(_current_timestamp())
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO job_posts (
                    title, description, company_id, posted_by, location, job_type,
                    experience_level, salary_range, skills_required, application_deadline,
                    is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (
                    title.strip(),
                    description.strip(),
                    company_id,
                    posted_by,
                    location.strip(),
                    job_type,
                    experience_level,
                    salary_range.strip() if salary_range else None,
                    json.dumps([skill.strip() for skill in skills_required if skill.strip()]),
                    _serialize_datetime(application_deadline),
                    now,
                    now,
                ),
            )
            job_id = cursor.lastrowid

        job = self.get_job_post(job_id)
        if job is None:
            raise RuntimeError("Failed to load job post after creation")
        return job

    _JOB_SELECT = """
        SELECT j.*,
               c.id AS c_id, c.name AS c_name, c.description AS c_description,
               c.industry AS c_industry, c.website AS c_website, c.logo_url AS c_logo_url,
               c.registered_by AS c_registered_by, c.created_at AS c_created_at
          FROM job_posts AS j
          JOIN companies AS c ON c.id = j.company_id
    """

    def get_job_post(self, job_id: int) -> Optional[JobPost]:
        with self._transaction() as conn:
            row = conn.execute(self._JOB_SELECT + " WHERE j.id = ?", (job_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_job_post(row)

    def search_job_posts(
        self,
        *,
        keyword: Optional[str] = None,
        location: Optional[str] = None,
        job_type: Optional[str] = None,
        experience_level: Optional[str] = None,
        company_name: Optional[str] = None,
        sort_by: str = "createdAt",
        ascending: bool = False,
    ) -> List[JobPost]:
        clauses = ["j.is_active = 1"]
        params: List[object] = []
        if keyword:
            pattern = f"%{keyword}%"
            clauses.append("(j.title LIKE ? OR j.description LIKE ? OR j.skills_required LIKE ?)")
            params.extend([pattern, pattern, pattern])
        if location:
            clauses.append("j.location LIKE ?")
            params.append(f"%{location}%")
        if job_type:
            clauses.append("j.job_type = ?")
            params.append(job_type)
        if experience_level:
            clauses.append("j.experience_level = ?")
            params.append(experience_level)
        if company_name:
            clauses.append("c.name LIKE ?")
            params.append(f"%{company_name}%")

        column = JOB_SORT_COLUMNS.get(sort_by, JOB_SORT_COLUMNS["createdAt"])
        direction = "ASC" if ascending else "DESC"
        query = (
            self._JOB_SELECT
            + " WHERE "
            + " AND ".join(clauses)
            + f" ORDER BY {column} {direction}, j.id {direction}"
        )
        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_job_post(row) for row in rows]

    def list_job_posts(self, *, posted_by: Optional[int] = None) -> List[JobPost]:
        """All postings (active or not), optionally limited to one poster."""

        query = self._JOB_SELECT
        params: List[object] = []
        if posted_by is not None:
            query += " WHERE j.posted_by = ?"
            params.append(posted_by)
        query += " ORDER BY j.created_at DESC, j.id DESC"
        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_job_post(row) for row in rows]

    def update_job_post(self, job_id: int, **fields: object) -> Optional[JobPost]:
        allowed = {
            "title": "title",
            "description": "description",
            "company_id": "company_id",
            "location": "location",
            "job_type": "job_type",
            "experience_level": "experience_level",
            "salary_range": "salary_range",
            "skills_required": "skills_required",
            "application_deadline": "application_deadline",
            "is_active": "is_active",
        }
        nullable_columns = {"salary_range", "application_deadline"}

        updates: List[str] = []
        values: List[object] = []
        for key, column in allowed.items():
            if key not in fields:
                continue
            value = fields[key]
            if value is None and column not in nullable_columns:
                continue
            if column == "skills_required":
                value = json.dumps([str(item).strip() for item in value if str(item).strip()])  # type: ignore[union-attr]
            elif column == "application_deadline":
                value = _serialize_datetime(value)  # type: ignore[arg-type]
            elif column == "is_active":
                value = int(bool(value))
            elif isinstance(value, str):
                value = value.strip()
            updates.append(f"{column} = ?")
            values.append(value)

        if not updates:
            return self.get_job_post(job_id)

        updates.append("updated_at = ?")
        values.append(_serialize_datetime(_current_timestamp()))
        values.append(job_id)
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE job_posts SET {', '.join(updates)} WHERE id = ?",
                values,
            )
            if cursor.rowcount == 0:
                return None

        return self.get_job_post(job_id)

    def apply_to_job(self, job_id: int, account_id: int) -> None:
        with self._transaction() as conn:
            try:
                conn.execute(
                    "INSERT INTO job_applications (job_id, account_id, applied_at) VALUES (?, ?, ?)",
                    (job_id, account_id, _serialize_datetime(_current_timestamp())),
                )
            except sqlite3.IntegrityError as exc:
                raise DuplicateApplication() from exc

    def has_applied(self, job_id: int, account_id: int) -> bool:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM job_applications WHERE job_id = ? AND account_id = ?",
                (job_id, account_id),
            ).fetchone()
        return row is not None

    def list_applicants(self, job_id: int) -> List[Applicant]:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT a.id, a.name, a.email, ja.applied_at
                  FROM job_applications AS ja
                  JOIN accounts AS a ON a.id = ja.account_id
                 WHERE ja.job_id = ?
                 ORDER BY ja.applied_at, a.id
                """,
                (job_id,),
            ).fetchall()
        return [
            Applicant(
                account_id=int(row["id"]),
                name=row["name"],
                email=str(row["email"]),
                applied_at=_parse_datetime(str(row["applied_at"])),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_account_with_secrets(self, row: sqlite3.Row) -> AccountWithSecrets:
        return AccountWithSecrets(
            id=int(row["id"]),
            email=str(row["email"]),
            name=row["name"],
            image=row["image"],
            role=Role.parse(row["role"]),
            status=AccountStatus.parse(row["status"]),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
            password_hash=row["password_hash"],
            referral_code=row["referral_code"],
            referral_expires_at=_parse_datetime(row["referral_expires_at"]),
        )

    def _row_to_referral_code(self, row: sqlite3.Row) -> ReferralCodeRecord:
        return ReferralCodeRecord(
            id=int(row["id"]),
            code=str(row["code"]),
            issued_by=int(row["issued_by"]),
            account_id=int(row["account_id"]),
            expires_at=_parse_datetime(row["expires_at"]),
            active=bool(row["active"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_company(self, row: sqlite3.Row) -> Company:
        return Company(
            id=int(row["id"]),
            name=str(row["name"]),
            description=row["description"],
            industry=row["industry"],
            website=row["website"],
            logo_url=row["logo_url"],
            registered_by=row["registered_by"],
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_job_post(self, row: sqlite3.Row) -> JobPost:
        company = Company(
            id=int(row["c_id"]),
            name=str(row["c_name"]),
            description=row["c_description"],
            industry=row["c_industry"],
            website=row["c_website"],
            logo_url=row["c_logo_url"],
            registered_by=row["c_registered_by"],
            created_at=_parse_datetime(str(row["c_created_at"])),
        )
        return JobPost(
            id=int(row["id"]),
            title=str(row["title"]),
            description=str(row["description"]),
            company=company,
            posted_by=int(row["posted_by"]),
            location=str(row["location"]),
            job_type=str(row["job_type"]),
            experience_level=str(row["experience_level"]),
            salary_range=row["salary_range"],
            skills_required=list(json.loads(row["skills_required"] or "[]")),
            application_deadline=_parse_datetime(row["application_deadline"]),
            is_active=bool(row["is_active"]),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
        )


__all__ = [
    "Database",
    "hash_password",
    "normalize_email",
    "verify_password",
]
