"""Account service - Sign-up, sign-in, Google sign-in, sign-out and password reset"""

import asyncio
import logging
from typing import Optional

from ...identity import AuthUser, GoogleCredential, IdentityProvider
from ...route_guard import dashboard_path_for_role, safe_redirect
from ...session import stored_role
from ...shared import notices
from ...shared.auth_messages import (
    google_sign_in_message,
    is_cancellation,
    password_reset_message,
    sign_in_message,
    sign_up_message,
)
from ..practitioners.repository import PractitionerRepository
from ..practitioners.schemas import CreatePractitionerProfileInput
from ..users.repository import UserRepository
from ..users.schemas import CreateUserProfileInput, UserRole
from .schemas import ActionResult, SessionUser

logger = logging.getLogger(__name__)

SIGN_UP_REDIRECT = "/dashboard"
HOME_PATH = "/"

# Keeps fire-and-forget tasks referenced until they finish
_background_tasks: set[asyncio.Task] = set()


def _session_user(user: AuthUser) -> SessionUser:
    return SessionUser(
        uid=user.uid,
        email=user.email,
        displayName=user.display_name,
        photoURL=user.photo_url,
        emailVerified=user.email_verified,
        idToken=user.id_token,
        refreshToken=user.refresh_token,
    )


class AccountAction:
    """
    Base for the account actions.

    Each action tracks ``loading`` while its call is in flight, the last
    user-facing ``error``, the ``notices`` to show and where to ``redirect``
    on success.
    """

    def __init__(self, identity: IdentityProvider):
        self.identity = identity
        self.loading = False
        self.error: Optional[str] = None
        self.error_code: Optional[str] = None
        self.notices: list[notices.Notice] = []
        self.redirect: Optional[str] = None
        self.user: Optional[AuthUser] = None

    def _begin(self) -> None:
        self.loading = True
        self.error = None
        self.error_code = None
        self.notices = []
        self.redirect = None

    def _fail(self, error: BaseException, message: str) -> None:
        self.error = message
        self.error_code = getattr(error, "code", None)
        self.notices.append(notices.error(message))

    def result(self) -> ActionResult:
        return ActionResult(
            ok=self.error is None,
            redirect=self.redirect,
            error=self.error,
            notices=list(self.notices),
            user=_session_user(self.user) if self.user else None,
        )


class SignUpAction(AccountAction):
    """Create an account with its profile documents"""

    def __init__(
        self,
        identity: IdentityProvider,
        users: UserRepository,
        practitioners: PractitionerRepository,
    ):
        super().__init__(identity)
        self.users = users
        self.practitioners = practitioners

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str],
        role: UserRole,
    ) -> Optional[AuthUser]:
        self._begin()
        try:
            try:
                user = await self.identity.sign_up(email, password)
                if display_name:
                    user = await self.identity.update_profile(user, display_name)
            except Exception as e:
                logger.error(f"❌ Sign up failed for {email}: {str(e)}")
                self._fail(e, sign_up_message(e))
                return None

            self.user = user

            # The account stays even if the profile documents can't be written
            await self._create_profiles(user, email, display_name, role)
            await self._send_verification(user)

            self.redirect = SIGN_UP_REDIRECT
            return user
        finally:
            self.loading = False

    async def _create_profiles(
        self, user: AuthUser, email: str, display_name: Optional[str], role: UserRole
    ) -> None:
        profile_email = user.email or email
        try:
            await asyncio.to_thread(
                self.users.create_user_profile,
                CreateUserProfileInput(
                    uid=user.uid,
                    email=profile_email,
                    role=role,
                    displayName=display_name or None,
                    photoURL=user.photo_url,
                    emailVerified=user.email_verified,
                ),
            )
        except Exception as e:
            logger.error(f"❌ Error creating user profile for {user.uid}: {str(e)}")
            self.notices.append(
                notices.warning("Account created but profile setup incomplete. Please contact support.")
            )

        if role != "practitioner":
            return

        try:
            await asyncio.to_thread(
                self.practitioners.create_practitioner_profile,
                CreatePractitionerProfileInput(
                    uid=user.uid,
                    email=profile_email,
                    displayName=display_name or profile_email,
                    photoURL=user.photo_url,
                ),
            )
        except Exception as e:
            logger.error(f"❌ Error creating practitioner profile for {user.uid}: {str(e)}")
            self.notices.append(
                notices.warning("Account created but practitioner profile setup incomplete.")
            )

    async def _send_verification(self, user: AuthUser) -> None:
        try:
            await self.identity.send_email_verification(user)
        except Exception as e:
            logger.warning(f"⚠️ Verification email not sent to {user.email}: {str(e)}")
            self.notices.append(notices.success("Account created successfully!"))
            self.notices.append(
                notices.warning("We couldn't send the verification email. You can request it again later.")
            )
            return

        self.notices.append(
            notices.success("Account created! Please check your email to verify your account.")
        )


class SignInAction(AccountAction):
    """Email and password sign-in with role-based landing"""

    def __init__(self, identity: IdentityProvider, users: UserRepository):
        super().__init__(identity)
        self.users = users

    async def sign_in(
        self, email: str, password: str, redirect_to: Optional[str] = None
    ) -> Optional[AuthUser]:
        self._begin()
        try:
            try:
                user = await self.identity.sign_in_with_password(email, password)
            except Exception as e:
                logger.warning(f"⚠️ Sign in failed for {email}: {str(e)}")
                self._fail(e, sign_in_message(e))
                return None

            self.user = user
            self.notices.append(notices.success("Signed in successfully"))
            self.redirect = safe_redirect(redirect_to) or await self._landing_page()
            return user
        finally:
            self.loading = False

    async def _landing_page(self) -> str:
        return dashboard_path_for_role(await stored_role(self.identity, self.users))


class GoogleSignInAction(AccountAction):
    """Google sign-in; first-time users get a client profile in the background"""

    def __init__(self, identity: IdentityProvider, users: UserRepository):
        super().__init__(identity)
        self.users = users
        self.profile_task: Optional[asyncio.Task] = None

    async def sign_in_with_google(
        self, credential: GoogleCredential, redirect_to: Optional[str] = None
    ) -> Optional[AuthUser]:
        self._begin()
        try:
            user = await self.identity.sign_in_with_google(credential)
        except Exception as e:
            if is_cancellation(e):
                logger.info("ℹ️ Google sign in cancelled by user")
                return None
            logger.warning(f"⚠️ Google sign in failed: {str(e)}")
            self._fail(e, google_sign_in_message(e))
            return None
        finally:
            self.loading = False

        self.user = user
        self.notices.append(notices.success("Signed in with Google successfully"))

        self.profile_task = asyncio.get_running_loop().create_task(self._ensure_client_profile(user))
        _background_tasks.add(self.profile_task)
        self.profile_task.add_done_callback(_background_tasks.discard)

        self.redirect = safe_redirect(redirect_to) or HOME_PATH
        return user

    async def _ensure_client_profile(self, user: AuthUser) -> None:
        try:
            if await asyncio.to_thread(self.users.user_exists, user.uid):
                return
            await asyncio.to_thread(
                self.users.create_user_profile,
                CreateUserProfileInput(
                    uid=user.uid,
                    email=user.email or "",
                    role="client",
                    displayName=user.display_name,
                    photoURL=user.photo_url,
                    emailVerified=user.email_verified,
                ),
            )
        except Exception as e:
            logger.error(f"❌ Error creating profile after Google sign in for {user.uid}: {str(e)}")


class SignOutAction(AccountAction):
    async def sign_out(self) -> None:
        self._begin()
        try:
            await self.identity.sign_out()
        except Exception as e:
            logger.error(f"❌ Sign out failed: {str(e)}")
            self._fail(e, getattr(e, "message", None) or "Failed to sign out. Please try again.")
            return
        finally:
            self.loading = False

        self.notices.append(notices.success("Signed out successfully"))
        self.redirect = HOME_PATH


class PasswordResetAction(AccountAction):
    async def send(self, email: str) -> bool:
        self._begin()
        try:
            await self.identity.send_password_reset(email)
        except Exception as e:
            logger.warning(f"⚠️ Password reset failed for {email}: {str(e)}")
            self._fail(e, password_reset_message(e))
            return False
        finally:
            self.loading = False

        self.notices.append(
            notices.success("Password reset email sent. Please check your inbox.")
        )
        return True
