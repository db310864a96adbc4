"""Exception hierarchy for chiara."""

from typing import Optional


class ChiaraError(Exception):
    """Base class for all chiara errors."""


class UnsupportedOperation(ChiaraError):
    """Raised for collection mutations that chiara does not implement."""


class ViewResolutionError(ChiaraError, ValueError):
    """Raised when an index key cannot be resolved to a view reference."""


class RemoteCallError(ChiaraError):
    """A call to the Podio API failed (network, HTTP status, or bad body)."""

    def __init__(self, message: str, *, path: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class AuthError(RemoteCallError):
    """Could not obtain an access token."""


class StructureError(ChiaraError):
    """Invalid or missing application structure."""


class UnknownFieldError(StructureError, KeyError):
    """A field name or id is not part of an application structure."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""
