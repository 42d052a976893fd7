"""
Authentication state coordinator.

Follows the identity provider's session changes and exposes a derived
(user, role, loading) state. The role is published as the default right
away and replaced by the role stored on the user profile once that lookup
finishes, so observers can briefly see the default role.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .domain.users.repository import UserRepository
from .domain.users.schemas import UserRole
from .identity import AuthUser, IdentityProvider
from .shared.errors import is_offline_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    user: Optional[AuthUser]
    role: Optional[UserRole]
    loading: bool


AuthStateObserver = Callable[[AuthState], None]


class AuthSession:
    def __init__(
        self,
        identity: IdentityProvider,
        user_repository: UserRepository,
        default_role: UserRole = "client",
    ):
        self.identity = identity
        self.user_repository = user_repository
        self.default_role = default_role

        self.user: Optional[AuthUser] = None
        self.role: Optional[UserRole] = None
        self.loading = True

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._role_task: Optional[asyncio.Task] = None
        self._observers: list[AuthStateObserver] = []

    @property
    def state(self) -> AuthState:
        return AuthState(user=self.user, role=self.role, loading=self.loading)

    def start(self) -> None:
        """Subscribe to session changes (once); call from inside the event loop"""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.identity.on_auth_state_changed(self._on_auth_state_changed)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._cancel_role_task()

    def subscribe(self, observer: AuthStateObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self) -> None:
        state = self.state
        for observer in list(self._observers):
            observer(state)

    def _on_auth_state_changed(self, user: Optional[AuthUser]) -> None:
        if self._role_task is not None and not self._role_task.done():
            self._role_task.cancel()
        self._role_task = None

        if user is not None:
            self.user = user
            # Don't block on the profile lookup
            self.role = self.default_role
            self._role_task = asyncio.get_running_loop().create_task(self._resolve_role(user.uid))
        else:
            self.user = None
            self.role = None

        self.loading = False
        self._publish()

    async def _resolve_role(self, uid: str) -> None:
        try:
            profile = await asyncio.to_thread(self.user_repository.get_user, uid)
            if profile is None:
                logger.info(f"ℹ️ No profile yet for {uid}, keeping role '{self.default_role}'")
                return
            if profile.role is None:
                profile = await asyncio.to_thread(
                    self.user_repository.backfill_role, uid, self.default_role
                )
        except Exception as e:
            if is_offline_error(e):
                logger.warning(f"⚠️ Firestore is offline, keeping role '{self.default_role}' for {uid}")
            else:
                logger.error(f"❌ Failed to fetch user role for {uid}: {str(e)}")
            return

        if self.user is not None and self.user.uid == uid and profile.role != self.role:
            self.role = profile.role
            self._publish()

    async def _cancel_role_task(self) -> None:
        task, self._role_task = self._role_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def wait_for_role(self) -> Optional[UserRole]:
        """Wait for a pending role lookup to settle and return the current role"""
        task = self._role_task
        if task is not None:
            await asyncio.shield(task)
        return self.role

    # ------------------------------------------------------------------
    # Pass-through operations
    # ------------------------------------------------------------------

    async def sign_out(self) -> None:
        await self.identity.sign_out()
        await self._cancel_role_task()
        self.user = None
        self.role = None

    async def send_password_reset(self, email: str) -> None:
        await self.identity.send_password_reset(email)

    async def send_email_verification(self) -> None:
        if self.identity.current_user is not None:
            await self.identity.send_email_verification(self.identity.current_user)

    async def reload_user(self) -> None:
        if self.identity.current_user is not None:
            self.user = await self.identity.reload_user(self.identity.current_user)
            self._publish()

    # ------------------------------------------------------------------
    # Handled by the dedicated account actions
    # ------------------------------------------------------------------

    async def sign_in_email(self, email: str, password: str) -> None:
        raise NotImplementedError("signInEmail should be called from the SignInAction")

    async def sign_up_email(
        self, email: str, password: str, display_name: str, role: UserRole
    ) -> None:
        raise NotImplementedError("signUpEmail should be called from the SignUpAction")

    async def sign_in_google(self) -> None:
        raise NotImplementedError("signInGoogle should be called from the GoogleSignInAction")


async def stored_role(
    identity: IdentityProvider, user_repository: UserRepository
) -> Optional[UserRole]:
    """Settled role of the identity's current user, through a short-lived session"""
    session = AuthSession(identity, user_repository)
    session.start()
    try:
        return await session.wait_for_role()
    finally:
        await session.close()
