"""
Exceptions raised by the waitlist service and its storage backends.
"""
from typing import Optional


class WaitlistError(Exception):
    """Base waitlist exception"""
    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class InvalidEmailError(WaitlistError):
    """Raised when a submission is missing an email or the format is wrong"""
    pass


class DuplicateEmailError(WaitlistError):
    """Raised when the email is already on the waitlist"""
    pass


class StorageUnavailableError(WaitlistError):
    """Raised when every configured backend failed"""
    pass


class UnauthorizedError(WaitlistError):
    """Raised when an admin read carries no valid credential"""
    pass


class StorageError(Exception):
    """Raised by a single backend when it cannot read or write its data.

    The service treats this as a signal to move on to the next backend.
    """
    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(f"[{backend}] {message}")
