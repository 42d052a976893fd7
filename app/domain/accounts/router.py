"""Account router - FastAPI endpoints for sign-up, sign-in and sign-out"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from ...auth import CurrentUser, get_current_user, get_identity_provider, get_token_revoker
from ...identity import GoogleCredential, IdentityProvider
from ...shared import notices
from ..practitioners.repository import PractitionerRepository
from ..practitioners.router import get_practitioner_repository
from ..users.repository import UserRepository
from ..users.router import get_user_repository
from .schemas import (
    ActionResult,
    GoogleSignInRequest,
    PasswordResetRequest,
    SignInRequest,
    SignUpRequest,
)
from .service import (
    AccountAction,
    GoogleSignInAction,
    PasswordResetAction,
    SignInAction,
    SignOutAction,
    SignUpAction,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

ERROR_STATUS = {
    "auth/invalid-credential": 401,
    "auth/wrong-password": 401,
    "auth/user-not-found": 401,
    "auth/user-disabled": 403,
    "auth/email-already-in-use": 409,
    "auth/account-exists-with-different-credential": 409,
    "auth/too-many-requests": 429,
    "auth/network-request-failed": 503,
}


def _respond(action: AccountAction) -> ActionResult:
    """Return the action's result, or raise with its message when it failed"""
    if action.error is not None:
        status_code = ERROR_STATUS.get(action.error_code or "", 400)
        raise HTTPException(status_code=status_code, detail=action.error)
    return action.result()


@router.post("/signup", response_model=ActionResult)
async def sign_up(
    data: SignUpRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
    users: UserRepository = Depends(get_user_repository),
    practitioners: PractitionerRepository = Depends(get_practitioner_repository),
):
    """Create an account; profile or email failures come back as warnings"""
    logger.info(f"📥 Sign up request for {data.email} as {data.role}")
    action = SignUpAction(identity, users, practitioners)
    await action.sign_up(data.email, data.password, data.displayName, data.role)
    return _respond(action)


@router.post("/signin", response_model=ActionResult)
async def sign_in(
    data: SignInRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
    users: UserRepository = Depends(get_user_repository),
):
    action = SignInAction(identity, users)
    await action.sign_in(data.email, data.password, data.redirect)
    return _respond(action)


@router.post("/google", response_model=ActionResult)
async def sign_in_with_google(
    data: GoogleSignInRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
    users: UserRepository = Depends(get_user_repository),
):
    """Exchange the Google popup result for a Firebase session"""
    action = GoogleSignInAction(identity, users)
    credential = GoogleCredential(
        id_token=data.idToken, access_token=data.accessToken, error=data.error
    )
    user = await action.sign_in_with_google(credential, data.redirect)
    if user is None and action.error is None:
        # Popup closed: nothing happened, nothing to report
        return ActionResult(ok=False)
    return _respond(action)


@router.post("/password-reset", response_model=ActionResult)
async def send_password_reset(
    data: PasswordResetRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
):
    action = PasswordResetAction(identity)
    await action.send(data.email)
    return _respond(action)


@router.post("/signout", response_model=ActionResult)
async def sign_out(
    current_user: CurrentUser = Depends(get_current_user),
    identity: IdentityProvider = Depends(get_identity_provider),
    revoke=Depends(get_token_revoker),
):
    """End the caller's session and revoke their refresh tokens"""
    identity.restore_session(current_user.as_auth_user())
    await asyncio.to_thread(revoke, current_user.uid)

    action = SignOutAction(identity)
    await action.sign_out()
    return _respond(action)


@router.post("/send-verification", response_model=ActionResult)
async def send_verification(
    current_user: CurrentUser = Depends(get_current_user),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    """Resend the email verification link to the signed-in user"""
    if current_user.email_verified:
        return ActionResult(ok=True, notices=[notices.success("Your email is already verified.")])

    try:
        await identity.send_email_verification(current_user.as_auth_user())
    except Exception as e:
        logger.error(f"❌ Error sending verification email to {current_user.email}: {str(e)}")
        raise HTTPException(
            status_code=ERROR_STATUS.get(getattr(e, "code", ""), 400),
            detail="Failed to send verification email. Please try again.",
        ) from e

    return ActionResult(
        ok=True, notices=[notices.success("Verification email sent. Please check your inbox.")]
    )
