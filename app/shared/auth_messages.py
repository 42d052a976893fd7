"""Map identity provider error codes to the messages shown to users"""

from typing import Optional

NETWORK_ERROR = "Network error. Please check your connection."
POPUP_CLOSED = "auth/popup-closed-by-user"

SIGN_IN_MESSAGES = {
    "auth/invalid-credential": "Invalid email or password.",
    "auth/user-not-found": "No account found with this email.",
    "auth/wrong-password": "Incorrect password.",
    "auth/too-many-requests": "Too many failed attempts. Please try again later.",
    "auth/network-request-failed": NETWORK_ERROR,
}
SIGN_IN_FALLBACK = "Failed to sign in. Please try again."

SIGN_UP_MESSAGES = {
    "auth/email-already-in-use": "An account with this email already exists.",
    "auth/invalid-email": "Invalid email address.",
    "auth/weak-password": "Password is too weak. Please use a stronger password.",
    "auth/network-request-failed": NETWORK_ERROR,
}
SIGN_UP_FALLBACK = "Failed to create account. Please try again."

GOOGLE_MESSAGES = {
    POPUP_CLOSED: "Sign in was cancelled.",
    "auth/popup-blocked": "Popup was blocked. Please allow popups for this site.",
    "auth/network-request-failed": NETWORK_ERROR,
    "auth/account-exists-with-different-credential": (
        "An account already exists with this email. "
        "Please sign in with your email and password."
    ),
}
GOOGLE_FALLBACK = "Failed to sign in with Google. Please try again."

PASSWORD_RESET_MESSAGES = {
    "auth/user-not-found": "No account found with this email.",
    "auth/invalid-email": "Invalid email address.",
    "auth/too-many-requests": "Too many requests. Please try again later.",
    "auth/network-request-failed": NETWORK_ERROR,
}
PASSWORD_RESET_FALLBACK = "Failed to send password reset email. Please try again."


def _classify(
    error: BaseException, messages: dict[str, str], fallback: str
) -> str:
    code: Optional[str] = getattr(error, "code", None)
    if code in messages:
        return messages[code]
    # Unmatched codes surface the provider's own message when there is one
    return getattr(error, "message", None) or fallback


def sign_in_message(error: BaseException) -> str:
    return _classify(error, SIGN_IN_MESSAGES, SIGN_IN_FALLBACK)


def sign_up_message(error: BaseException) -> str:
    return _classify(error, SIGN_UP_MESSAGES, SIGN_UP_FALLBACK)


def google_sign_in_message(error: BaseException) -> str:
    return _classify(error, GOOGLE_MESSAGES, GOOGLE_FALLBACK)


def password_reset_message(error: BaseException) -> str:
    return _classify(error, PASSWORD_RESET_MESSAGES, PASSWORD_RESET_FALLBACK)


def is_cancellation(error: BaseException) -> bool:
    """Closing the Google popup is not an error"""
    return getattr(error, "code", None) == POPUP_CLOSED
