"""User service - Business logic for the signed-in user's profile"""

import logging

from fastapi import HTTPException

from ...auth import CurrentUser
from ...route_guard import dashboard_path_for_role
from ...session import AuthSession
from ...shared.errors import DocumentNotFoundError
from .repository import UserRepository
from .schemas import UpdateUserProfileInput, UserDocument

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user profiles"""

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def get_profile(self, user: CurrentUser) -> UserDocument:
        profile = self.repo.get_user(user.uid)
        if not profile:
            raise HTTPException(status_code=404, detail="User profile not found")
        return profile

    def update_profile(self, data: UpdateUserProfileInput, user: CurrentUser) -> UserDocument:
        """Update profile fields; the role can't be changed here"""
        logger.info(f"📝 Updating profile for {user.uid}")
        try:
            return self.repo.update_user(user.uid, data)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=404, detail="User profile not found") from e

    async def dashboard_path(self, session: AuthSession) -> str:
        """Dashboard for the session's settled role, the client dashboard otherwise"""
        role = await session.wait_for_role()
        logger.info(f"🧭 Dashboard for {session.user.uid if session.user else 'anonymous'}: {role}")
        return dashboard_path_for_role(role)
