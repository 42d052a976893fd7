"""User router - FastAPI endpoints for the signed-in user"""

import logging

from fastapi import APIRouter, Depends

from ...auth import CurrentUser, get_current_user, get_identity_provider
from ...firebase import get_firestore
from ...identity import IdentityProvider
from ...session import AuthSession
from .repository import UserRepository
from .schemas import UpdateUserProfileInput, UserDocument
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


def get_user_repository(db=Depends(get_firestore)) -> UserRepository:
    return UserRepository(db)


def get_user_service(repo: UserRepository = Depends(get_user_repository)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(repo)


async def get_auth_session(
    current_user: CurrentUser = Depends(get_current_user),
    identity: IdentityProvider = Depends(get_identity_provider),
    repo: UserRepository = Depends(get_user_repository),
):
    """Session for the verified caller, closed when the request ends"""
    identity.restore_session(current_user.as_auth_user())
    session = AuthSession(identity, repo)
    session.start()
    try:
        yield session
    finally:
        await session.close()


@router.get("/users/me", response_model=UserDocument)
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.get_profile(current_user)


@router.patch("/users/me", response_model=UserDocument)
async def update_me(
    data: UpdateUserProfileInput,
    current_user: CurrentUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.update_profile(data, current_user)


@router.get("/dashboard")
async def dashboard(
    session: AuthSession = Depends(get_auth_session),
    service: UserService = Depends(get_user_service),
):
    """Where the signed-in user should land"""
    return {"redirect": await service.dashboard_path(session)}
