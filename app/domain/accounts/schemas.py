"""Account schemas - Request and result models for sign-up, sign-in and sign-out"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...shared.notices import Notice
from ..users.schemas import UserRole


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    displayName: Optional[str] = None
    role: UserRole = "client"

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class SignInRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)
    redirect: Optional[str] = None  # path to return to after sign-in


class GoogleSignInRequest(BaseModel):
    """Result of the Google popup, forwarded by the web client"""

    idToken: Optional[str] = None
    accessToken: Optional[str] = None
    error: Optional[str] = None  # OAuth error, e.g. "access_denied"
    redirect: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: EmailStr


class SessionUser(BaseModel):
    uid: str
    email: Optional[str] = None
    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    emailVerified: bool = False
    idToken: Optional[str] = None
    refreshToken: Optional[str] = None


class ActionResult(BaseModel):
    """Outcome of an account action as the web client renders it"""

    ok: bool
    redirect: Optional[str] = None
    error: Optional[str] = None
    notices: list[Notice] = []
    user: Optional[SessionUser] = None
