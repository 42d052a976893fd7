"""Errors raised by the Firestore repositories"""

from google.api_core import exceptions as google_exceptions


class DocumentExistsError(ValueError):
    """Create was called for a key that already has a document"""


class DocumentNotFoundError(LookupError):
    """Update was called for a key that has no document"""


OFFLINE_EXCEPTIONS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    ConnectionError,
)


def is_offline_error(error: BaseException) -> bool:
    """True when the backing store could not be reached (soft failure)"""
    if isinstance(error, OFFLINE_EXCEPTIONS):
        return True
    if str(getattr(error, "code", "")).lower() == "unavailable":
        return True
    return "offline" in str(error).lower()
