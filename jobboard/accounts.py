"""Self-service account operations: registration and profile edits."""
from __future__ import annotations

import logging
import re
from typing import Optional

from .database import Database
from .errors import NotFound, ValidationFailed
from .models import SELF_REGISTERABLE_ROLES, AccountSummary, Role

logger = logging.getLogger("jobboard.accounts")

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


class AccountService:
    def __init__(self, database: Database) -> None:
        self._database = database

    def register(
        self,
        *,
        name: Optional[str],
        email: Optional[str],
        role: object,
        password: Optional[str] = None,
    ) -> AccountSummary:
        """Create a Pending account for a visitor.

        Administrators are provisioned out of band, so the role must be one
        of the self-registerable roles. A password is accepted for parity
        with the registration form but is only stored for Administrators.
        """

        cleaned_name = (name or "").strip()
        cleaned_email = (email or "").strip()
        if not cleaned_name or not cleaned_email or not role:
            raise ValidationFailed("Name, email, and desired role are required")
        if not EMAIL_PATTERN.fullmatch(cleaned_email):
            raise ValidationFailed("Invalid email format")

        try:
            parsed_role = Role.parse(role)
        except ValueError as exc:
            raise ValidationFailed("Invalid role") from exc
        if parsed_role not in SELF_REGISTERABLE_ROLES:
            raise ValidationFailed(f"Registration as {parsed_role.value} is not allowed")

        account = self._database.create_account(
            cleaned_name,
            cleaned_email,
            parsed_role,
            password=password,
        )
        logger.info("Registration request received for %s as %s", account.email, parsed_role.value)
        return account

    def profile(self, account_id: int) -> AccountSummary:
        account = self._database.find_by_id(account_id)
        if account is None:
            raise NotFound("User profile not found")
        return account

    def update_profile(
        self,
        account_id: int,
        *,
        name: Optional[str] = None,
        image: Optional[str] = None,
    ) -> AccountSummary:
        return self._database.update_profile(account_id, name=name, image=image)


__all__ = ["AccountService", "EMAIL_PATTERN"]
