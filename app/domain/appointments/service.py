"""Appointment service - Business logic for booking and managing appointments"""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import HTTPException
from firebase_admin import firestore

from ...auth import CurrentUser
from ...shared import notices
from ...shared.errors import DocumentNotFoundError
from ..practitioners.repository import PractitionerRepository
from ..users.schemas import UserRole
from .repository import AppointmentRepository
from .schemas import (
    AppointmentDocument,
    AppointmentResult,
    CancelledBy,
    CreateAppointmentInput,
    ListAppointmentsOptions,
    UpdateAppointmentInput,
)

logger = logging.getLogger(__name__)

STATUS_NOTICES = {
    "confirmed": "Appointment confirmed successfully!",
    "cancelled": "Appointment cancelled",
}
DEFAULT_UPDATE_NOTICE = "Appointment updated successfully!"
CANCELLATION_FIELDS = ("cancelledBy", "cancelledAt")


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, repo: AppointmentRepository, practitioners: PractitionerRepository):
        self.repo = repo
        self.practitioners = practitioners

    @staticmethod
    def _side(appointment: AppointmentDocument, user: CurrentUser) -> CancelledBy:
        return "client" if appointment.clientId == user.uid else "practitioner"

    def get_appointment(self, appointment_id: str, user: CurrentUser) -> AppointmentDocument:
        """Get an appointment the user takes part in"""
        appointment = self.repo.get_appointment(appointment_id)
        if not appointment or user.uid not in (appointment.clientId, appointment.practitionerId):
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def create_appointment(self, data: CreateAppointmentInput, user: CurrentUser) -> AppointmentResult:
        """Book a pending appointment for the signed-in client"""
        logger.info(f"📥 Booking appointment for {user.uid} with {data.practitionerId}")

        if data.clientId != user.uid:
            logger.warning(f"⚠️ {user.uid} tried to book on behalf of {data.clientId}")
            raise HTTPException(status_code=403, detail="You can only book appointments for yourself")

        if data.practitionerId == user.uid:
            raise HTTPException(status_code=400, detail="You cannot book an appointment with yourself")

        practitioner = self.practitioners.get_practitioner(data.practitionerId)
        if not practitioner or not practitioner.isActive:
            raise HTTPException(status_code=404, detail="Practitioner not found")

        appointment = self.repo.create_appointment(data)
        return AppointmentResult(
            appointment=appointment,
            notices=[notices.success("Appointment booked successfully!")],
        )

    def update_appointment(
        self, appointment_id: str, data: UpdateAppointmentInput, user: CurrentUser
    ) -> AppointmentResult:
        appointment = self.get_appointment(appointment_id, user)
        side = self._side(appointment, user)
        changes = data.model_dump(exclude_unset=True)
        # Cancellation fields are recorded from the caller, never taken from input
        data = UpdateAppointmentInput(
            **{k: v for k, v in changes.items() if k not in CANCELLATION_FIELDS}
        )

        if side == "client":
            # Clients can cancel but not move a booking through its other states
            if data.status is not None and data.status != "cancelled":
                raise HTTPException(
                    status_code=403, detail="Only the practitioner can change this status"
                )
            if "practitionerNotes" in changes:
                raise HTTPException(
                    status_code=403, detail="Only the practitioner can edit practitioner notes"
                )

        server_fields = {}
        if data.status == "cancelled":
            server_fields["cancelledBy"] = side
            server_fields["cancelledAt"] = firestore.SERVER_TIMESTAMP

        try:
            updated = self.repo.update_appointment(appointment_id, data, **server_fields)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=404, detail="Appointment not found") from e

        message = STATUS_NOTICES.get(data.status, DEFAULT_UPDATE_NOTICE)
        return AppointmentResult(appointment=updated, notices=[notices.success(message)])

    def cancel_appointment(self, appointment_id: str, user: CurrentUser) -> AppointmentResult:
        """Cancel from either side; the side is recorded as cancelledBy"""
        appointment = self.get_appointment(appointment_id, user)
        side = self._side(appointment, user)
        logger.info(f"🚫 Appointment {appointment_id} cancelled by {side} {user.uid}")

        try:
            cancelled = self.repo.cancel_appointment(appointment_id, side)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=404, detail="Appointment not found") from e

        return AppointmentResult(
            appointment=cancelled,
            notices=[notices.success(STATUS_NOTICES["cancelled"])],
        )

    def confirm_appointment(self, appointment_id: str, user: CurrentUser) -> AppointmentResult:
        appointment = self.get_appointment(appointment_id, user)
        if appointment.practitionerId != user.uid:
            raise HTTPException(
                status_code=403, detail="Only the practitioner can confirm this appointment"
            )
        return self.update_appointment(
            appointment_id, UpdateAppointmentInput(status="confirmed"), user
        )

    def scoped_options(
        self,
        options: Optional[ListAppointmentsOptions],
        user: CurrentUser,
        role: Optional[UserRole] = None,
    ) -> ListAppointmentsOptions:
        """
        Restrict a listing to the caller's own appointments.

        Practitioners see their schedule and clients their bookings. Without
        an explicit side the caller is treated as the client.
        """
        options = options or ListAppointmentsOptions()

        if options.practitionerId == user.uid or (
            role == "practitioner" and options.practitionerId is None
        ):
            return options.model_copy(update={"practitionerId": user.uid})

        if options.clientId in (None, user.uid):
            return options.model_copy(update={"clientId": user.uid})

        logger.warning(f"⚠️ {user.uid} tried to list appointments they are not part of")
        raise HTTPException(status_code=403, detail="You can only list your own appointments")

    def list_appointments(
        self,
        options: Optional[ListAppointmentsOptions],
        user: CurrentUser,
        role: Optional[UserRole] = None,
    ) -> list[AppointmentDocument]:
        return self.repo.list_appointments(self.scoped_options(options, user, role))

    def open_feed(
        self,
        options: Optional[ListAppointmentsOptions],
        user: CurrentUser,
        role: Optional[UserRole] = None,
    ) -> "AppointmentFeed":
        return AppointmentFeed(self.repo, self.scoped_options(options, user, role))


class AppointmentFeed:
    """
    Live appointment lists for one listener.

    Firestore calls the snapshot callback on its own thread; every result
    set is handed to the event loop and queued, so consumers just await
    ``get()``. Use as an async context manager, or call ``start`` from
    inside the loop and ``close`` when done.
    """

    def __init__(self, repo: AppointmentRepository, options: ListAppointmentsOptions):
        self.repo = repo
        self.options = options
        self.queue: asyncio.Queue[list[AppointmentDocument]] = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def start(self) -> "AppointmentFeed":
        if self._unsubscribe is None:
            self._loop = asyncio.get_running_loop()
            self._unsubscribe = self.repo.subscribe_to_appointments(self.options, self._on_change)
        return self

    def _on_change(self, appointments: list[AppointmentDocument]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.queue.put_nowait, appointments)

    async def get(self) -> list[AppointmentDocument]:
        return await self.queue.get()

    def close(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    async def __aenter__(self) -> "AppointmentFeed":
        return self.start()

    async def __aexit__(self, *exc_info) -> None:
        self.close()
