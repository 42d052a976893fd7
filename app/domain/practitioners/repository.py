"""Practitioner repository - Firestore operations for practitioners/{uid}"""

import logging
from typing import Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ...firebase import get_firestore
from ...shared.errors import DocumentExistsError, DocumentNotFoundError
from .schemas import (
    DEFAULT_AVAILABILITY_RULES,
    DEFAULT_BIO,
    DEFAULT_PRICING,
    DEFAULT_SESSION_DURATION,
    CreatePractitionerProfileInput,
    ListPractitionersOptions,
    PractitionerDocument,
    UpdatePractitionerProfileInput,
)

logger = logging.getLogger(__name__)

# Default page size to bound read cost
DEFAULT_LIST_LIMIT = 50


class PractitionerRepository:
    """Repository for practitioner profile documents"""

    collection_name = "practitioners"

    def __init__(self, db=None):
        self.db = db if db is not None else get_firestore()

    def _collection(self):
        return self.db.collection(self.collection_name)

    def _ref(self, uid: str):
        return self._collection().document(uid)

    def create_practitioner_profile(
        self, data: CreatePractitionerProfileInput
    ) -> PractitionerDocument:
        """Create a practitioner profile seeded with default pricing and hours"""
        ref = self._ref(data.uid)
        if ref.get().exists:
            raise DocumentExistsError(f"Practitioner profile already exists for UID: {data.uid}")

        pricing = data.pricing or DEFAULT_PRICING
        availability = data.availabilityRules or DEFAULT_AVAILABILITY_RULES

        ref.set(
            {
                "uid": data.uid,
                "email": data.email,
                "displayName": data.displayName,
                "photoURL": data.photoURL,
                "bio": data.bio if data.bio is not None else DEFAULT_BIO,
                "specialties": data.specialties if data.specialties is not None else [],
                "pricing": pricing.model_dump(),
                "availabilityRules": availability.model_dump(exclude_none=True),
                "sessionDuration": data.sessionDuration or DEFAULT_SESSION_DURATION,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
                "isActive": True,
            }
        )
        logger.info(f"🆕 Practitioner profile created: {data.uid}")

        created = ref.get()
        if not created.exists:
            raise RuntimeError("Failed to create practitioner profile")
        return PractitionerDocument(**created.to_dict())

    def get_practitioner(self, practitioner_id: str) -> Optional[PractitionerDocument]:
        snapshot = self._ref(practitioner_id).get()
        if not snapshot.exists:
            return None
        return PractitionerDocument(**snapshot.to_dict())

    def update_practitioner(
        self, practitioner_id: str, data: UpdatePractitionerProfileInput
    ) -> PractitionerDocument:
        ref = self._ref(practitioner_id)
        if not ref.get().exists:
            raise DocumentNotFoundError(
                f"Practitioner profile not found for UID: {practitioner_id}"
            )

        updates = data.model_dump(exclude_unset=True)
        if data.availabilityRules is not None:
            updates["availabilityRules"] = data.availabilityRules.model_dump(exclude_none=True)
        updates["updatedAt"] = firestore.SERVER_TIMESTAMP
        ref.update(updates)

        updated = ref.get()
        if not updated.exists:
            raise RuntimeError("Failed to update practitioner profile")
        return PractitionerDocument(**updated.to_dict())

    def list_practitioners(
        self, options: Optional[ListPractitionersOptions] = None
    ) -> list[PractitionerDocument]:
        """List practitioners, newest first"""
        options = options or ListPractitionersOptions()
        query = self._collection()

        if options.isActive is not None:
            query = query.where(filter=FieldFilter("isActive", "==", options.isActive))

        if options.specialty:
            query = query.where(
                filter=FieldFilter("specialties", "array_contains", options.specialty)
            )

        query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)

        if options.startAfter:
            cursor = self._ref(options.startAfter).get()
            if cursor.exists:
                query = query.start_after(cursor)

        query = query.limit(options.limit or DEFAULT_LIST_LIMIT)

        return [PractitionerDocument(**snapshot.to_dict()) for snapshot in query.stream()]

    def practitioner_exists(self, practitioner_id: str) -> bool:
        return self._ref(practitioner_id).get().exists
