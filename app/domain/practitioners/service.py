"""Practitioner service - Business logic for practitioner profiles"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...auth import CurrentUser
from ...shared.errors import DocumentNotFoundError
from .repository import PractitionerRepository
from .schemas import (
    ListPractitionersOptions,
    PractitionerDocument,
    UpdatePractitionerProfileInput,
)

logger = logging.getLogger(__name__)


class PractitionerService:
    """Service layer for practitioner business logic"""

    def __init__(self, repo: PractitionerRepository):
        self.repo = repo

    def list_practitioners(
        self, options: Optional[ListPractitionersOptions] = None
    ) -> list[PractitionerDocument]:
        """Public directory; only active practitioners unless asked otherwise"""
        options = options or ListPractitionersOptions()
        if options.isActive is None:
            options = options.model_copy(update={"isActive": True})
        return self.repo.list_practitioners(options)

    def get_practitioner(self, practitioner_id: str) -> PractitionerDocument:
        practitioner = self.repo.get_practitioner(practitioner_id)
        if not practitioner:
            raise HTTPException(status_code=404, detail="Practitioner not found")
        return practitioner

    def update_own_profile(
        self, data: UpdatePractitionerProfileInput, user: CurrentUser
    ) -> PractitionerDocument:
        """Practitioners may only edit their own profile"""
        if not self.repo.practitioner_exists(user.uid):
            logger.warning(f"⚠️ {user.uid} has no practitioner profile to update")
            raise HTTPException(status_code=404, detail="Practitioner profile not found")

        logger.info(f"📝 Updating practitioner profile for {user.uid}")
        try:
            return self.repo.update_practitioner(user.uid, data)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=404, detail="Practitioner profile not found") from e
