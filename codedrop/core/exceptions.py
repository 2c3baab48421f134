"""
codedrop/core/exceptions.py

Custom exception hierarchy for the application.

Raising typed exceptions from the store and services lets controllers catch
specific cases and return the correct HTTP status code without leaking
internals.
"""


class AppBaseException(Exception):
    """Root exception — catch-all for any application-level error."""


# ── Caller errors ──────────────────────────────────────────────────────────────

class InputError(AppBaseException):
    """Raised when a submission or retrieval request is malformed."""


class PayloadTooLargeError(InputError):
    """Raised when an attachment exceeds the upload size cap."""


# ── Entry store exceptions ─────────────────────────────────────────────────────

class EntryNotFoundError(AppBaseException):
    """
    Raised when a code does not denote a live entry.

    Unknown, wrong and expired codes all raise this same error.
    """


class DuplicateKeyError(AppBaseException):
    """Raised by a store when the code is already held by a live entry."""


class StorageUnavailableError(AppBaseException):
    """Raised when the backing medium fails or does not answer in time."""


# ── Allocation exceptions ──────────────────────────────────────────────────────

class CapacityExhaustedError(AppBaseException):
    """Raised when no free code could be found within the attempt budget."""
