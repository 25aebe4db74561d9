"""
Exception types raised by the data-access layer.

Validation problems are caller-correctable and end up as 400 responses.
Backend failures end up as generic 500 responses after being logged.
"""


class BookstoreError(Exception):
    """Base class for every error raised by amana_bookstore."""


class ValidationError(BookstoreError):
    """Malformed or missing input, duplicate unique key, or unknown referenced book."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DuplicateKey(ValidationError):
    """A write collided with an existing id or unique field."""


class InvalidIdentifier(ValidationError):
    """An id value that cannot be normalized to a canonical string."""

    def __init__(self, value: object):
        super().__init__(f"Invalid identifier value: {value!r}")
        self.value = value


class BackendUnavailable(BookstoreError):
    """The configured persistent store failed (network, timeout, auth, ...)."""
