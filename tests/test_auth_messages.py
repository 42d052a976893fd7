import pytest

from app.identity import AuthError
from app.shared.auth_messages import (
    google_sign_in_message,
    is_cancellation,
    password_reset_message,
    sign_in_message,
    sign_up_message,
)


@pytest.mark.parametrize(
    "code, message",
    [
        ("auth/invalid-credential", "Invalid email or password."),
        ("auth/user-not-found", "No account found with this email."),
        ("auth/wrong-password", "Incorrect password."),
        ("auth/too-many-requests", "Too many failed attempts. Please try again later."),
        ("auth/network-request-failed", "Network error. Please check your connection."),
    ],
)
def test_sign_in_messages(code, message):
    assert sign_in_message(AuthError(code)) == message


def test_sign_up_messages():
    assert sign_up_message(AuthError("auth/email-already-in-use")) == (
        "An account with this email already exists."
    )
    assert sign_up_message(AuthError("auth/weak-password")) == (
        "Password is too weak. Please use a stronger password."
    )


def test_google_messages():
    assert google_sign_in_message(AuthError("auth/popup-blocked")) == (
        "Popup was blocked. Please allow popups for this site."
    )
    assert "sign in with your email and password" in google_sign_in_message(
        AuthError("auth/account-exists-with-different-credential")
    )


def test_password_reset_messages():
    assert password_reset_message(AuthError("auth/invalid-email")) == "Invalid email address."


def test_unmatched_code_uses_provider_message():
    error = AuthError("auth/user-disabled", "This account has been disabled.")

    assert sign_in_message(error) == "This account has been disabled."


def test_error_without_message_uses_fallback():
    class Bare(Exception):
        pass

    assert sign_in_message(Bare()) == "Failed to sign in. Please try again."
    assert sign_up_message(Bare()) == "Failed to create account. Please try again."
    assert google_sign_in_message(Bare()) == "Failed to sign in with Google. Please try again."
    assert password_reset_message(Bare()) == (
        "Failed to send password reset email. Please try again."
    )


def test_cancellation():
    assert is_cancellation(AuthError("auth/popup-closed-by-user"))
    assert not is_cancellation(AuthError("auth/popup-blocked"))
    assert not is_cancellation(ValueError("nope"))
