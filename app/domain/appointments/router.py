"""Appointment router - FastAPI endpoints for booking and live schedules"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    WebSocketException,
)
from starlette.status import WS_1008_POLICY_VIOLATION

from ...auth import CurrentUser, get_current_user, get_websocket_user
from ...firebase import get_firestore
from ..practitioners.router import get_practitioner_repository
from ..practitioners.repository import PractitionerRepository
from ..users.schemas import UserRole
from .repository import AppointmentRepository
from .schemas import (
    AppointmentDocument,
    AppointmentResult,
    AppointmentStatus,
    BookAppointmentRequest,
    CreateAppointmentInput,
    ListAppointmentsOptions,
    UpdateAppointmentInput,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_repository(db=Depends(get_firestore)) -> AppointmentRepository:
    return AppointmentRepository(db)


def get_appointment_service(
    repo: AppointmentRepository = Depends(get_appointment_repository),
    practitioners: PractitionerRepository = Depends(get_practitioner_repository),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(repo, practitioners)


def get_list_options(
    status: Optional[AppointmentStatus] = Query(None),
    start_after: Optional[datetime] = Query(None, alias="startAfter"),
    start_before: Optional[datetime] = Query(None, alias="startBefore"),
    practitioner_id: Optional[str] = Query(None, alias="practitionerId"),
    client_id: Optional[str] = Query(None, alias="clientId"),
    limit: Optional[int] = Query(None, gt=0),
    cursor: Optional[str] = Query(None),
) -> ListAppointmentsOptions:
    return ListAppointmentsOptions(
        practitionerId=practitioner_id,
        clientId=client_id,
        status=status,
        startAfter=start_after,
        startBefore=start_before,
        limit=limit,
        startAfterDocId=cursor,
    )


# ============================================================================
# LIVE UPDATES
# ============================================================================


@router.websocket("/live")
async def live_appointments(
    websocket: WebSocket,
    role: Optional[UserRole] = Query(None),
    options: ListAppointmentsOptions = Depends(get_list_options),
    current_user: CurrentUser = Depends(get_websocket_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Push the caller's appointment list on every change"""
    try:
        feed = service.open_feed(options, current_user, role)
    except HTTPException as e:
        raise WebSocketException(code=WS_1008_POLICY_VIOLATION, reason=str(e.detail)) from e

    await websocket.accept()
    logger.info(f"🔌 Live appointments opened for {current_user.uid}")

    async def pump() -> None:
        while True:
            appointments = await feed.get()
            await websocket.send_json([a.model_dump(mode="json") for a in appointments])

    async with feed:
        sender = asyncio.create_task(pump())
        try:
            # Clients don't send anything; this only waits for the disconnect
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info(f"🔌 Live appointments closed for {current_user.uid}")
        finally:
            sender.cancel()


# ============================================================================
# CORE OPERATIONS
# ============================================================================


@router.post("", response_model=AppointmentResult, status_code=201)
async def book_appointment(
    data: BookAppointmentRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment with a practitioner as the signed-in client"""
    appointment = CreateAppointmentInput(
        clientId=current_user.uid,
        practitionerId=data.practitionerId,
        startTime=data.startTime,
        endTime=data.endTime,
        notes=data.notes,
    )
    return service.create_appointment(appointment, current_user)


@router.get("", response_model=list[AppointmentDocument])
async def list_appointments(
    role: Optional[UserRole] = Query(None),
    options: ListAppointmentsOptions = Depends(get_list_options),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """The caller's bookings, or their schedule with role=practitioner"""
    return service.list_appointments(options, current_user, role)


@router.get("/{appointment_id}", response_model=AppointmentDocument)
async def get_appointment(
    appointment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.get_appointment(appointment_id, current_user)


@router.patch("/{appointment_id}", response_model=AppointmentResult)
async def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentInput,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.update_appointment(appointment_id, data, current_user)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResult)
async def cancel_appointment(
    appointment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.cancel_appointment(appointment_id, current_user)


@router.post("/{appointment_id}/confirm", response_model=AppointmentResult)
async def confirm_appointment(
    appointment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.confirm_appointment(appointment_id, current_user)
