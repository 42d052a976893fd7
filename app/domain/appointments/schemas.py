"""Appointment domain schemas - Pydantic models for appointments/{id}"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ...shared.notices import Notice

AppointmentStatus = Literal["pending", "confirmed", "cancelled", "completed", "no-show"]
PaymentStatus = Literal["pending", "paid", "refunded"]
CancelledBy = Literal["client", "practitioner"]


class AppointmentDocument(BaseModel):
    """Document stored at appointments/{id}"""

    model_config = ConfigDict(extra="ignore")

    id: str
    clientId: str
    practitionerId: str
    startTime: datetime
    endTime: datetime
    status: AppointmentStatus
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[CancelledBy] = None
    notes: Optional[str] = None
    practitionerNotes: Optional[str] = None
    reminderSent: bool = False
    reminderSentAt: Optional[datetime] = None
    intakeFormCompleted: bool = False
    intakeFormId: Optional[str] = None
    sessionId: Optional[str] = None
    paymentStatus: Optional[PaymentStatus] = None
    paymentIntentId: Optional[str] = None


class CreateAppointmentInput(BaseModel):
    clientId: str
    practitionerId: str
    startTime: datetime
    endTime: datetime
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.endTime <= self.startTime:
            raise ValueError("Appointment must end after it starts")
        return self


class UpdateAppointmentInput(BaseModel):
    status: Optional[AppointmentStatus] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[CancelledBy] = None
    notes: Optional[str] = None
    practitionerNotes: Optional[str] = None
    reminderSent: Optional[bool] = None
    reminderSentAt: Optional[datetime] = None
    intakeFormCompleted: Optional[bool] = None
    intakeFormId: Optional[str] = None
    sessionId: Optional[str] = None
    paymentStatus: Optional[PaymentStatus] = None
    paymentIntentId: Optional[str] = None


class ListAppointmentsOptions(BaseModel):
    practitionerId: Optional[str] = None
    clientId: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    startAfter: Optional[datetime] = None  # startTime >= this
    startBefore: Optional[datetime] = None  # startTime <= this
    limit: Optional[int] = Field(None, gt=0)
    startAfterDocId: Optional[str] = None  # pagination cursor


class BookAppointmentRequest(BaseModel):
    """Booking submitted by a signed-in client"""

    practitionerId: str
    startTime: datetime
    endTime: datetime
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_times(self):
        if self.endTime <= self.startTime:
            raise ValueError("Appointment must end after it starts")
        return self


class AppointmentResult(BaseModel):
    appointment: AppointmentDocument
    notices: list[Notice] = []
