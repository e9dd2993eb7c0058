"""Error taxonomy for the job board access core.

Every failure the services raise derives from :class:`JobBoardError`. Each
class carries a stable ``code``, the HTTP status the web layer should use
and a fixed user-facing message, so callers never echo internal details.
"""

from __future__ import annotations

from typing import Optional


class JobBoardError(Exception):
    """Base class for all domain errors."""

    code = "Error"
    http_status = 500
    user_message = "Something went wrong. Please try again later."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)

    @property
    def message(self) -> str:
        return str(self)


# ----------------------------------------------------------------------
# Authentication failures
# ----------------------------------------------------------------------
class AuthFailure(JobBoardError):
    """Login attempt refused. The message is always the fixed user string."""

    code = "AuthFailure"
    http_status = 401
    user_message = "Login failed."

    def __init__(self) -> None:
        super().__init__(self.user_message)


class InvalidCredentials(AuthFailure):
    code = "InvalidCredentials"
    user_message = "Invalid email or credentials."


class AccountPending(AuthFailure):
    code = "AccountPending"
    user_message = (
        "Account is pending approval. Please wait for an administrator to approve your request."
    )


class AccountRejected(AuthFailure):
    code = "AccountRejected"
    user_message = "Your account has been rejected. Please contact support."


class ReferralCodeRequired(AuthFailure):
    code = "ReferralCodeRequired"
    user_message = "Referral Code is required for non-admin login."


class ReferralExpired(AuthFailure):
    code = "ReferralExpired"
    user_message = "Referral code expired."


class NoPasswordConfigured(AuthFailure):
    code = "NoPasswordConfigured"
    user_message = "Administrator account has no password set."


# ----------------------------------------------------------------------
# Approval workflow
# ----------------------------------------------------------------------
class ApprovalConflict(JobBoardError):
    code = "ApprovalConflict"
    http_status = 409


class AlreadyApproved(ApprovalConflict):
    code = "AlreadyApproved"
    user_message = "User already approved"


class AlreadyRejected(ApprovalConflict):
    code = "AlreadyRejected"
    user_message = "User already rejected"


# ----------------------------------------------------------------------
# General
# ----------------------------------------------------------------------
class Unauthorized(JobBoardError):
    """The caller lacks the role or ownership required for the operation."""

    code = "Unauthorized"
    http_status = 403
    user_message = "You are not allowed to perform this action."


class NotFound(JobBoardError):
    code = "NotFound"
    http_status = 404
    user_message = "Not found."


class ValidationFailed(JobBoardError):
    code = "ValidationFailed"
    http_status = 400
    user_message = "Invalid request."


class DuplicateAccount(JobBoardError):
    code = "DuplicateAccount"
    http_status = 409
    user_message = "User already exists"


class DuplicateApplication(JobBoardError):
    code = "DuplicateApplication"
    http_status = 409
    user_message = "You have already applied for this job"


class StoreUnavailable(JobBoardError):
    """The credential store could not be reached. Never retried internally."""

    code = "StoreUnavailable"
    http_status = 503
    user_message = "The service is temporarily unavailable."


__all__ = [
    "AccountPending",
    "AccountRejected",
    "AlreadyApproved",
    "AlreadyRejected",
    "ApprovalConflict",
    "AuthFailure",
    "DuplicateAccount",
    "DuplicateApplication",
    "InvalidCredentials",
    "JobBoardError",
    "NoPasswordConfigured",
    "NotFound",
    "ReferralCodeRequired",
    "ReferralExpired",
    "StoreUnavailable",
    "Unauthorized",
    "ValidationFailed",
]
