"""Exceptions raised by membership backends."""


class BackendError(RuntimeError):
    """Base exception raised for backend failures.

    Covers transport problems and unexpected responses; the membership
    workflow reports these to the user without retrying.
    """


class BackendDisabledError(BackendError):
    """Raised when the hosted backend is used without being configured."""


class BackendAuthorizationError(BackendError):
    """Raised when the backend rejects the caller's credentials or role."""


class BackendConflictError(BackendError):
    """Raised when a write violates a uniqueness or integrity constraint."""


class BackendNotFoundError(BackendError):
    """Raised when a referenced row does not exist."""
