"""
Firebase Authentication client for end-user operations.

The Admin SDK cannot sign users in, so the operations the web SDK performs
(sign up, password sign-in, Google sign-in, profile update, verification and
reset emails) go through the Identity Toolkit REST API with the project's
web API key. The provider keeps the signed-in user and notifies listeners on
every session change, the way the browser SDK does.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional
from urllib.parse import urlencode

import httpx

from .config import FRONTEND_URL, IDENTITY_TOOLKIT_URL, OAUTH_REQUEST_URI

logger = logging.getLogger(__name__)

# Identity Toolkit error messages -> Firebase SDK error codes
REST_ERROR_CODES = {
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "INVALID_EMAIL": "auth/invalid-email",
    "WEAK_PASSWORD": "auth/weak-password",
    "MISSING_PASSWORD": "auth/missing-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "INVALID_IDP_RESPONSE": "auth/invalid-credential",
    "INVALID_PASSWORD": "auth/wrong-password",
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "USER_NOT_FOUND": "auth/user-not-found",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "OPERATION_NOT_ALLOWED": "auth/operation-not-allowed",
    "FEDERATED_USER_ID_ALREADY_LINKED": "auth/credential-already-in-use",
    "INVALID_ID_TOKEN": "auth/invalid-user-token",
    "TOKEN_EXPIRED": "auth/user-token-expired",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": "auth/requires-recent-login",
}

# OAuth errors reported by the Google popup / redirect
OAUTH_ERROR_CODES = {
    "access_denied": "auth/popup-closed-by-user",
    "popup_closed_by_user": "auth/popup-closed-by-user",
    "popup_blocked": "auth/popup-blocked",
}


class AuthError(Exception):
    """An identity provider failure, carrying a Firebase-style error code"""

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or f"Firebase: Error ({code})."
        super().__init__(self.message)


@dataclass(frozen=True)
class AuthUser:
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    email_verified: bool = False
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    is_new_user: bool = False


@dataclass(frozen=True)
class GoogleCredential:
    """Result of the Google OAuth popup: a token, or the OAuth error it returned"""

    id_token: Optional[str] = None
    access_token: Optional[str] = None
    error: Optional[str] = None


AuthStateListener = Callable[[Optional[AuthUser]], None]


def _user_from_response(data: dict, fallback: Optional[AuthUser] = None) -> AuthUser:
    base = fallback or AuthUser(uid=data["localId"])
    return replace(
        base,
        uid=data.get("localId", base.uid),
        email=data.get("email", base.email),
        display_name=data.get("displayName", base.display_name),
        photo_url=data.get("photoUrl", base.photo_url),
        email_verified=bool(data.get("emailVerified", base.email_verified)),
        id_token=data.get("idToken", base.id_token),
        refresh_token=data.get("refreshToken", base.refresh_token),
        is_new_user=bool(data.get("isNewUser", False)),
    )


class IdentityProvider:
    """Identity Toolkit REST client holding the current session"""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient,
        base_url: str = IDENTITY_TOOLKIT_URL,
    ):
        self.api_key = api_key
        self.http = http_client
        self.base_url = base_url.rstrip("/")
        self.current_user: Optional[AuthUser] = None
        self._listeners: list[AuthStateListener] = []

    # ------------------------------------------------------------------
    # Session observation
    # ------------------------------------------------------------------

    def on_auth_state_changed(self, listener: AuthStateListener) -> Callable[[], None]:
        """Register a listener; it is called now and on every sign-in/sign-out"""
        self._listeners.append(listener)
        listener(self.current_user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_current_user(self, user: Optional[AuthUser]) -> None:
        self.current_user = user
        for listener in list(self._listeners):
            try:
                listener(user)
            except Exception:
                logger.exception("❌ Auth state listener failed")

    def restore_session(self, user: AuthUser) -> None:
        """Resume a session for a user whose ID token was already verified"""
        self._set_current_user(user)

    # ------------------------------------------------------------------
    # REST plumbing
    # ------------------------------------------------------------------

    async def _post(self, endpoint: str, payload: dict) -> dict:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = await self.http.post(url, params={"key": self.api_key}, json=payload)
        except httpx.TransportError as e:
            logger.error(f"❌ Identity Toolkit request failed ({endpoint}): {str(e)}")
            raise AuthError("auth/network-request-failed") from e

        if response.status_code >= 400:
            raise self._error_from_response(endpoint, response)
        return response.json()

    @staticmethod
    def _error_from_response(endpoint: str, response: httpx.Response) -> AuthError:
        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        raw = error.get("message", "") if isinstance(error, dict) else ""
        # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
        rest_code = raw.split(":", 1)[0].strip()
        code = REST_ERROR_CODES.get(rest_code, "auth/internal-error")
        logger.warning(
            f"⚠️ Identity Toolkit {endpoint} returned HTTP {response.status_code}: {raw or 'no message'}"
        )
        return AuthError(code)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str) -> AuthUser:
        data = await self._post(
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        user = _user_from_response(data)
        logger.info(f"🆕 Account created: {user.email}")
        self._set_current_user(user)
        return user

    async def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        data = await self._post(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        user = _user_from_response(data)
        logger.info(f"✅ Signed in: {user.email}")
        self._set_current_user(user)
        return user

    async def sign_in_with_google(self, credential: GoogleCredential) -> AuthUser:
        if credential.error:
            code = OAUTH_ERROR_CODES.get(credential.error, "auth/internal-error")
            raise AuthError(code)

        if credential.id_token:
            post_body = {"id_token": credential.id_token, "providerId": "google.com"}
        elif credential.access_token:
            post_body = {"access_token": credential.access_token, "providerId": "google.com"}
        else:
            raise AuthError("auth/argument-error", "A Google id_token or access_token is required.")

        data = await self._post(
            "accounts:signInWithIdp",
            {
                "postBody": urlencode(post_body),
                "requestUri": OAUTH_REQUEST_URI,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        if data.get("needConfirmation"):
            raise AuthError("auth/account-exists-with-different-credential")

        user = _user_from_response(data)
        logger.info(f"✅ Signed in with Google: {user.email} (new user: {user.is_new_user})")
        self._set_current_user(user)
        return user

    async def update_profile(self, user: AuthUser, display_name: str) -> AuthUser:
        data = await self._post(
            "accounts:update",
            {"idToken": user.id_token, "displayName": display_name, "returnSecureToken": True},
        )
        updated = _user_from_response(data, fallback=user)
        if self.current_user and self.current_user.uid == updated.uid:
            self.current_user = updated
        return updated

    async def send_email_verification(self, user: AuthUser) -> None:
        await self._post(
            "accounts:sendOobCode",
            {
                "requestType": "VERIFY_EMAIL",
                "idToken": user.id_token,
                "continueUrl": f"{FRONTEND_URL}/login",
            },
        )
        logger.info(f"📧 Verification email sent to {user.email}")

    async def send_password_reset(self, email: str) -> None:
        await self._post(
            "accounts:sendOobCode",
            {"requestType": "PASSWORD_RESET", "email": email, "continueUrl": f"{FRONTEND_URL}/login"},
        )
        logger.info(f"📧 Password reset email requested for {email}")

    async def reload_user(self, user: AuthUser) -> AuthUser:
        data = await self._post("accounts:lookup", {"idToken": user.id_token})
        users = data.get("users") or []
        if not users:
            raise AuthError("auth/user-not-found")
        reloaded = _user_from_response(users[0], fallback=user)
        if self.current_user and self.current_user.uid == reloaded.uid:
            self.current_user = reloaded
        return reloaded

    async def sign_out(self) -> None:
        if self.current_user:
            logger.info(f"👋 Signed out: {self.current_user.email}")
        self._set_current_user(None)
