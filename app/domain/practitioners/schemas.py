"""Practitioner domain schemas - Pydantic models for practitioners/{uid}"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import validate_currency, validate_time_of_day, validate_weekday


class Pricing(BaseModel):
    """Session prices in minor currency units (cents)"""

    initialConsultation: int = Field(..., ge=0)
    followUpSession: int = Field(..., ge=0)
    currency: str

    @field_validator("currency")
    @classmethod
    def validate_currency_code(cls, v):
        return validate_currency(v)


class WorkingHours(BaseModel):
    start: str
    end: str
    enabled: bool

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v):
        return validate_time_of_day(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.start >= self.end:
            raise ValueError("Working hours must end after they start")
        return self


class AvailabilityRules(BaseModel):
    timezone: str  # IANA name, e.g. "America/New_York"
    workingHours: dict[str, WorkingHours]
    blockedDates: Optional[list[datetime]] = None
    minBookingNotice: Optional[int] = Field(None, ge=0)  # hours
    maxBookingAdvance: Optional[int] = Field(None, ge=0)  # days

    @field_validator("workingHours")
    @classmethod
    def validate_days(cls, v):
        return {validate_weekday(day): hours for day, hours in v.items()}


DEFAULT_PRICING = Pricing(initialConsultation=10000, followUpSession=8000, currency="USD")

DEFAULT_AVAILABILITY_RULES = AvailabilityRules(
    timezone="America/New_York",
    workingHours={
        "monday": WorkingHours(start="09:00", end="17:00", enabled=True),
        "tuesday": WorkingHours(start="09:00", end="17:00", enabled=True),
        "wednesday": WorkingHours(start="09:00", end="17:00", enabled=True),
        "thursday": WorkingHours(start="09:00", end="17:00", enabled=True),
        "friday": WorkingHours(start="09:00", end="17:00", enabled=True),
        "saturday": WorkingHours(start="09:00", end="17:00", enabled=False),
        "sunday": WorkingHours(start="09:00", end="17:00", enabled=False),
    },
)

DEFAULT_BIO = "No bio available."
DEFAULT_SESSION_DURATION = 60


class PractitionerDocument(BaseModel):
    """Document stored at practitioners/{uid}"""

    model_config = ConfigDict(extra="ignore")

    uid: str
    email: str
    displayName: str
    photoURL: Optional[str] = None
    bio: str = DEFAULT_BIO
    specialties: list[str] = []
    pricing: Pricing
    availabilityRules: AvailabilityRules
    sessionDuration: int = DEFAULT_SESSION_DURATION
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    isActive: bool = True
    rating: Optional[float] = Field(None, ge=0, le=5)
    reviewCount: Optional[int] = None


class CreatePractitionerProfileInput(BaseModel):
    uid: str
    email: str
    displayName: str
    photoURL: Optional[str] = None
    bio: Optional[str] = None
    specialties: Optional[list[str]] = None
    pricing: Optional[Pricing] = None
    availabilityRules: Optional[AvailabilityRules] = None
    sessionDuration: Optional[int] = Field(None, gt=0)


class UpdatePractitionerProfileInput(BaseModel):
    displayName: Optional[str] = None
    photoURL: Optional[str] = None
    bio: Optional[str] = None
    specialties: Optional[list[str]] = None
    pricing: Optional[Pricing] = None
    availabilityRules: Optional[AvailabilityRules] = None
    sessionDuration: Optional[int] = Field(None, gt=0)
    isActive: Optional[bool] = None


class ListPractitionersOptions(BaseModel):
    isActive: Optional[bool] = None
    specialty: Optional[str] = None
    limit: Optional[int] = Field(None, gt=0)
    startAfter: Optional[str] = None  # practitioner UID to resume after
