"""
Lifecycle Errors

Every failure of a lifecycle or audit-maintenance operation is raised as a
``LifecycleError`` subclass carrying a stable ``error_code`` (recorded in the
audit log) and the HTTP status the API layer responds with.
"""

from uuid import UUID


class LifecycleError(Exception):
    """Base exception for lifecycle service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class InvalidTransitionError(LifecycleError):
    """Raised when an action is not allowed from the account's current state."""

    def __init__(self, action: str, current_status: str, actor_role: str | None = None):
        self.action = action
        self.current_status = current_status
        self.actor_role = actor_role
        message = f"Cannot {action} an account with status '{current_status}'"
        if actor_role:
            message += f" as {actor_role}"
        super().__init__(
            message=message + ".",
            error_code="INVALID_TRANSITION",
            status_code=409,
        )


class BannedError(LifecycleError):
    """Raised for any reapplication path on a permanently banned account."""

    def __init__(self, admin_id: UUID):
        super().__init__(
            message=f"Account {admin_id} is permanently banned after repeated rejections.",
            error_code="BANNED",
            status_code=403,
        )


class ReapplicationNotGrantedError(LifecycleError):
    def __init__(self, admin_id: UUID):
        super().__init__(
            message=f"Account {admin_id} has not been granted permission to reapply.",
            error_code="REAPPLICATION_NOT_GRANTED",
            status_code=403,
        )


class NotFoundError(LifecycleError):
    """Raised when an admin account or institution id is unknown."""

    def __init__(self, entity: str, entity_id: UUID | None = None, error_code: str = "NOT_FOUND"):
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(message=message, error_code=error_code, status_code=404)


class InstitutionNotFoundError(NotFoundError):
    def __init__(self, institution_id: UUID | None = None):
        super().__init__("Institution", institution_id, error_code="INSTITUTION_NOT_FOUND")


class InstitutionAlreadyClaimedError(LifecycleError):
    def __init__(self, institution_id: UUID):
        super().__init__(
            message=f"Institution {institution_id} already has an approved admin.",
            error_code="INSTITUTION_ALREADY_CLAIMED",
            status_code=409,
        )


class InvalidVerificationCodeError(LifecycleError):
    def __init__(self):
        super().__init__(
            message="The verification code does not match the institution's current code.",
            error_code="INVALID_VERIFICATION_CODE",
            status_code=400,
        )


class VerificationCodeExpiredError(InvalidVerificationCodeError):
    """The code matched but its expiry has passed."""

    def __init__(self):
        LifecycleError.__init__(
            self,
            message="The verification code has expired. Ask the platform team for a new one.",
            error_code="VERIFICATION_CODE_EXPIRED",
            status_code=400,
        )


class DuplicateAccountError(LifecycleError):
    """Raised when an application reuses the email or phone of an existing account."""

    def __init__(self, field: str):
        super().__init__(
            message=f"An admin account with this {field} already exists.",
            error_code="DUPLICATE_ACCOUNT",
            status_code=409,
        )


class ConflictError(LifecycleError):
    """Raised when a concurrent write wins twice in a row."""

    def __init__(self, message: str = "The record was modified concurrently. Please retry."):
        super().__init__(message=message, error_code="CONFLICT", status_code=409)


class OperationTimeoutError(LifecycleError):
    def __init__(self, timeout_seconds: float):
        super().__init__(
            message=f"The operation did not complete within {timeout_seconds:g} seconds. It is safe to retry.",
            error_code="TIMEOUT",
            status_code=504,
        )


class LifecycleValidationError(LifecycleError):
    """Raised for malformed input, e.g. a justification that is too short."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="VALIDATION_ERROR", status_code=422)


class PermissionDeniedError(LifecycleError):
    def __init__(self, message: str = "Super admin access is required for this operation."):
        super().__init__(message=message, error_code="PERMISSION_DENIED", status_code=403)


class StoreConflict(Exception):
    """
    Raised by a lifecycle store when a compare-and-swap write finds a
    different version than the one the change was planned against.

    Internal to the service layer; surfaced to callers as ``ConflictError``.
    """
