import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Query, WebSocketException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth

from .config import load_firebase_config, validate_firebase_config
from .firebase import get_firebase_app, get_http_client
from .identity import AuthUser, IdentityProvider

logger = logging.getLogger(__name__)

security = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved from a verified Firebase ID token"""

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    email_verified: bool = False
    id_token: Optional[str] = None

    def as_auth_user(self) -> AuthUser:
        return AuthUser(
            uid=self.uid,
            email=self.email,
            display_name=self.name,
            email_verified=self.email_verified,
            id_token=self.id_token,
        )


def verify_token(token: str) -> CurrentUser:
    """Verify a Firebase ID token and return the caller's identity"""
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    try:
        decoded = firebase_auth.verify_id_token(token, app=get_firebase_app())
    except firebase_auth.ExpiredIdTokenError as e:
        logger.info("ℹ️ Expired token presented")
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except (firebase_auth.InvalidIdTokenError, ValueError) as e:
        logger.warning(f"⚠️ Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Token verification failed") from e
    except firebase_auth.CertificateFetchError as e:
        logger.error(f"❌ Could not fetch Google public keys: {str(e)}")
        raise HTTPException(status_code=503, detail="Unable to verify token right now") from e

    uid = decoded.get("uid") or decoded.get("sub")
    if not uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(decoded.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    return CurrentUser(
        uid=uid,
        email=decoded.get("email"),
        name=decoded.get("name"),
        email_verified=bool(decoded.get("email_verified", False)),
        id_token=token,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Resolve the signed-in caller from the Bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    user = verify_token(credentials.credentials)
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


def get_websocket_user(token: str = Query(...)) -> CurrentUser:
    """Resolve the caller of a WebSocket from the ``token`` query parameter"""
    try:
        return verify_token(token)
    except HTTPException as e:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason=str(e.detail)) from e


def get_identity_provider() -> IdentityProvider:
    """A provider per request; the HTTP client underneath is shared"""
    config = validate_firebase_config(load_firebase_config())
    return IdentityProvider(api_key=config.apiKey, http_client=get_http_client())


def revoke_refresh_tokens(uid: str) -> None:
    """Invalidate every refresh token issued to ``uid``"""
    try:
        firebase_auth.revoke_refresh_tokens(uid, app=get_firebase_app())
    except firebase_auth.UserNotFoundError:
        logger.warning(f"⚠️ Cannot revoke tokens for unknown user {uid}")
        return
    logger.info(f"🔒 Refresh tokens revoked for {uid}")


def get_token_revoker():
    return revoke_refresh_tokens
