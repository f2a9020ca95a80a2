"""Custom exceptions for TreinUp.

Every error carries a stable ``code`` so callers facing the UI can turn it
into a ``{success, error}`` outcome without inspecting exception types.
"""

from collections.abc import Iterable


class TreinupError(Exception):
    """Base class for all TreinUp errors."""

    code = "error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class InvalidCredentialsError(TreinupError):
    """The identity provider rejected the email/password pair."""

    code = "invalid_credentials"


class EmailAlreadyInUseError(TreinupError):
    """An account with this email already exists."""

    code = "email_already_in_use"


class WeakCredentialsError(TreinupError):
    """The password does not meet the identity provider's policy."""

    code = "weak_credentials"


class NotAuthenticatedError(TreinupError):
    """No authenticated session is available."""

    code = "not_authenticated"


class NetworkError(TreinupError):
    """The backend could not be reached."""

    code = "network_error"


class BackendTimeoutError(TreinupError):
    """A backend call did not answer within the configured timeout."""

    code = "timeout"

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:.1f}s")


class BackendError(TreinupError):
    """The backend answered with an error that has no dedicated type."""

    code = "backend_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StorageUnavailableError(TreinupError):
    """Local credential storage could not be read or written."""

    code = "storage_unavailable"

    def __init__(self, message: str, failed_keys: Iterable[str] = ()) -> None:
        self.failed_keys = tuple(failed_keys)
        if self.failed_keys:
            message = f"{message} (keys: {', '.join(self.failed_keys)})"
        super().__init__(message)


class InvalidPayloadError(TreinupError):
    """A provisioning request is missing required fields."""

    code = "invalid_payload"

    def __init__(self, missing: Iterable[str] = (), message: str | None = None) -> None:
        self.missing = tuple(missing)
        if message is None:
            message = f"Missing required fields: {', '.join(self.missing)}"
        super().__init__(message)


class TenantUnavailableError(TreinupError):
    """The active tenant could not be pinned."""

    code = "tenant_unavailable"


class PlanNotFoundError(TreinupError):
    """The requested plan does not exist."""

    code = "plan_not_found"

    def __init__(self, plan_id: str) -> None:
        self.plan_id = plan_id
        super().__init__(f"Plan {plan_id} not found")


class ProfileAlreadyExistsError(TreinupError):
    """A profile already exists for this user."""

    code = "profile_already_exists"

    def __init__(self, user_id: str, profile_id: str | None = None) -> None:
        self.user_id = user_id
        self.profile_id = profile_id
        super().__init__(f"Profile already exists for user {user_id}")


class PartialProvisioningError(TreinupError):
    """The profile exists but a later provisioning step failed."""

    code = "partial_provisioning"

    def __init__(
        self,
        profile_id: str | None,
        pending_steps: Iterable[str],
        cause: str | None = None,
    ) -> None:
        self.profile_id = profile_id
        self.pending_steps = tuple(pending_steps)
        self.cause = cause
        message = f"Provisioning incomplete, pending: {', '.join(self.pending_steps)}"
        if cause:
            message = f"{message} ({cause})"
        super().__init__(message)


class DocumentConflictError(BackendError):
    """A document with the same unique key already exists."""

    code = "conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409)
