"""Practitioner router - FastAPI endpoints for the practitioner directory"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...auth import CurrentUser, get_current_user
from ...firebase import get_firestore
from .repository import PractitionerRepository
from .schemas import (
    ListPractitionersOptions,
    PractitionerDocument,
    UpdatePractitionerProfileInput,
)
from .service import PractitionerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/practitioners", tags=["Practitioners"])


def get_practitioner_repository(db=Depends(get_firestore)) -> PractitionerRepository:
    return PractitionerRepository(db)


def get_practitioner_service(
    repo: PractitionerRepository = Depends(get_practitioner_repository),
) -> PractitionerService:
    """Dependency injection for PractitionerService"""
    return PractitionerService(repo)


@router.get("", response_model=list[PractitionerDocument])
async def list_practitioners(
    service: PractitionerService = Depends(get_practitioner_service),
    specialty: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, gt=0),
    start_after: Optional[str] = Query(None, alias="startAfter"),
):
    """Active practitioners, newest first"""
    options = ListPractitionersOptions(specialty=specialty, limit=limit, startAfter=start_after)
    return service.list_practitioners(options)


@router.patch("/me", response_model=PractitionerDocument)
async def update_my_profile(
    data: UpdatePractitionerProfileInput,
    current_user: CurrentUser = Depends(get_current_user),
    service: PractitionerService = Depends(get_practitioner_service),
):
    return service.update_own_profile(data, current_user)


@router.get("/{practitioner_id}", response_model=PractitionerDocument)
async def get_practitioner(
    practitioner_id: str,
    service: PractitionerService = Depends(get_practitioner_service),
):
    return service.get_practitioner(practitioner_id)
