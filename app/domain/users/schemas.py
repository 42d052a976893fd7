"""User domain schemas - Firestore document and input models for users/{uid}"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

UserRole = Literal["client", "practitioner"]


class UserDocument(BaseModel):
    """Document stored at users/{uid}"""

    model_config = ConfigDict(extra="ignore")

    uid: str
    email: str
    role: Optional[UserRole] = None  # missing on legacy records until backfilled
    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    emailVerified: bool = False
    phoneNumber: Optional[str] = None
    bio: Optional[str] = None


class CreateUserProfileInput(BaseModel):
    uid: str
    email: str
    role: UserRole
    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    emailVerified: bool = False
    phoneNumber: Optional[str] = None
    bio: Optional[str] = None


class UpdateUserProfileInput(BaseModel):
    """Profile fields a user may change; role is not one of them"""

    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    phoneNumber: Optional[str] = None
    bio: Optional[str] = None
