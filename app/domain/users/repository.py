"""User repository - Firestore operations for users/{uid}"""

import logging
from typing import Optional

from firebase_admin import firestore

from ...firebase import get_firestore
from ...shared.errors import DocumentExistsError, DocumentNotFoundError
from .schemas import CreateUserProfileInput, UpdateUserProfileInput, UserDocument, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user profile documents"""

    collection_name = "users"

    def __init__(self, db=None):
        self.db = db if db is not None else get_firestore()

    def _ref(self, uid: str):
        return self.db.collection(self.collection_name).document(uid)

    def create_user_profile(self, data: CreateUserProfileInput) -> UserDocument:
        """Create a user profile; fails if one already exists for the UID"""
        ref = self._ref(data.uid)
        if ref.get().exists:
            raise DocumentExistsError(f"User profile already exists for UID: {data.uid}")

        ref.set(
            {
                "uid": data.uid,
                "email": data.email,
                "role": data.role,
                "displayName": data.displayName,
                "photoURL": data.photoURL,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
                "emailVerified": data.emailVerified,
                "phoneNumber": data.phoneNumber,
                "bio": data.bio,
            }
        )
        logger.info(f"🆕 User profile created: {data.uid} ({data.role})")

        created = ref.get()
        if not created.exists:
            raise RuntimeError("Failed to create user profile")
        return UserDocument(**created.to_dict())

    def get_user(self, uid: str) -> Optional[UserDocument]:
        """Get user profile by UID, None when absent"""
        snapshot = self._ref(uid).get()
        if not snapshot.exists:
            return None
        return UserDocument(**snapshot.to_dict())

    def update_user(self, uid: str, data: UpdateUserProfileInput) -> UserDocument:
        """Update the fields that were set on the input"""
        ref = self._ref(uid)
        if not ref.get().exists:
            raise DocumentNotFoundError(f"User profile not found for UID: {uid}")

        updates = data.model_dump(exclude_unset=True)
        updates["updatedAt"] = firestore.SERVER_TIMESTAMP
        ref.update(updates)

        updated = ref.get()
        if not updated.exists:
            raise RuntimeError("Failed to update user profile")
        return UserDocument(**updated.to_dict())

    def backfill_role(self, uid: str, role: UserRole) -> UserDocument:
        """Set the role on a legacy profile that has none; an existing role is kept"""
        ref = self._ref(uid)
        snapshot = ref.get()
        if not snapshot.exists:
            raise DocumentNotFoundError(f"User profile not found for UID: {uid}")

        current = UserDocument(**snapshot.to_dict())
        if current.role:
            return current

        ref.update({"role": role, "updatedAt": firestore.SERVER_TIMESTAMP})
        logger.info(f"🔄 Backfilled role '{role}' for legacy user {uid}")
        return UserDocument(**ref.get().to_dict())

    def user_exists(self, uid: str) -> bool:
        return self._ref(uid).get().exists
