from __future__ import annotations


class CryptogramError(Exception):
    """Base class for every error raised by the cryptogram package."""


class InvalidInputError(CryptogramError, ValueError):
    """Raised when a puzzle cannot be built from the given text or difficulty."""


class IllegalTransitionError(CryptogramError):
    """Raised by explicit overrides that cannot apply to the current outcome."""


class CorruptRecordError(CryptogramError, ValueError):
    """Raised when a stored puzzle record fails validation on load."""
