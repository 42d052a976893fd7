"""Appointment repository - Firestore operations for appointments/{id}"""

import logging
from typing import Callable, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ...firebase import get_firestore
from ...shared.errors import DocumentNotFoundError
from .schemas import (
    AppointmentDocument,
    CancelledBy,
    CreateAppointmentInput,
    ListAppointmentsOptions,
    UpdateAppointmentInput,
)

logger = logging.getLogger(__name__)

# Default page size to bound read cost
DEFAULT_LIST_LIMIT = 100

AppointmentsCallback = Callable[[list[AppointmentDocument]], None]


class AppointmentRepository:
    """Repository for appointment documents, with realtime subscriptions"""

    collection_name = "appointments"

    def __init__(self, db=None):
        self.db = db if db is not None else get_firestore()

    def _collection(self):
        return self.db.collection(self.collection_name)

    def _ref(self, appointment_id: str):
        return self._collection().document(appointment_id)

    @staticmethod
    def _to_document(snapshot) -> AppointmentDocument:
        return AppointmentDocument(id=snapshot.id, **snapshot.to_dict())

    def create_appointment(self, data: CreateAppointmentInput) -> AppointmentDocument:
        """Create a pending appointment with a generated ID"""
        ref = self._collection().document()
        ref.set(
            {
                "clientId": data.clientId,
                "practitionerId": data.practitionerId,
                "startTime": data.startTime,
                "endTime": data.endTime,
                "status": "pending",
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
                "notes": data.notes,
                "reminderSent": False,
                "intakeFormCompleted": False,
            }
        )
        logger.info(
            f"🆕 Appointment {ref.id} created: client {data.clientId} with practitioner {data.practitionerId}"
        )

        created = ref.get()
        if not created.exists:
            raise RuntimeError("Failed to create appointment")
        return self._to_document(created)

    def get_appointment(self, appointment_id: str) -> Optional[AppointmentDocument]:
        snapshot = self._ref(appointment_id).get()
        if not snapshot.exists:
            return None
        return self._to_document(snapshot)

    def update_appointment(
        self, appointment_id: str, data: UpdateAppointmentInput, **server_fields
    ) -> AppointmentDocument:
        """
        Update the fields set on the input. ``server_fields`` are written as-is,
        for values such as SERVER_TIMESTAMP that the input model cannot carry.
        """
        ref = self._ref(appointment_id)
        if not ref.get().exists:
            raise DocumentNotFoundError(f"Appointment not found: {appointment_id}")

        updates = data.model_dump(exclude_unset=True)
        updates.update(server_fields)
        updates["updatedAt"] = firestore.SERVER_TIMESTAMP
        ref.update(updates)

        updated = ref.get()
        if not updated.exists:
            raise RuntimeError("Failed to update appointment")
        return self._to_document(updated)

    def _filtered_query(self, options: ListAppointmentsOptions):
        query = self._collection()

        if options.practitionerId:
            query = query.where(filter=FieldFilter("practitionerId", "==", options.practitionerId))

        if options.clientId:
            query = query.where(filter=FieldFilter("clientId", "==", options.clientId))

        if options.status:
            query = query.where(filter=FieldFilter("status", "==", options.status))

        if options.startAfter:
            query = query.where(filter=FieldFilter("startTime", ">=", options.startAfter))

        if options.startBefore:
            query = query.where(filter=FieldFilter("startTime", "<=", options.startBefore))

        # Upcoming first
        return query.order_by("startTime", direction=firestore.Query.ASCENDING)

    def list_appointments(
        self, options: Optional[ListAppointmentsOptions] = None
    ) -> list[AppointmentDocument]:
        options = options or ListAppointmentsOptions()
        query = self._filtered_query(options)

        if options.startAfterDocId:
            cursor = self._ref(options.startAfterDocId).get()
            if cursor.exists:
                query = query.start_after(cursor)

        query = query.limit(options.limit or DEFAULT_LIST_LIMIT)
        return [self._to_document(snapshot) for snapshot in query.stream()]

    def subscribe_to_appointments(
        self, options: ListAppointmentsOptions, callback: AppointmentsCallback
    ) -> Callable[[], None]:
        """
        Deliver the full filtered, ordered result set to ``callback`` on every
        change. On error the callback receives an empty list.

        Returns:
            A function that cancels the subscription
        """
        query = self._filtered_query(options).limit(options.limit or DEFAULT_LIST_LIMIT)

        def on_snapshot(snapshots, _changes, _read_time):
            try:
                appointments = [self._to_document(snapshot) for snapshot in snapshots]
            except Exception as e:
                logger.error(f"❌ Error in appointments subscription: {str(e)}")
                callback([])
                return
            callback(appointments)

        try:
            watch = query.on_snapshot(on_snapshot)
        except Exception as e:
            logger.error(f"❌ Error in appointments subscription: {str(e)}")
            callback([])
            return lambda: None

        return watch.unsubscribe

    def cancel_appointment(
        self, appointment_id: str, cancelled_by: CancelledBy
    ) -> AppointmentDocument:
        return self.update_appointment(
            appointment_id,
            UpdateAppointmentInput(status="cancelled", cancelledBy=cancelled_by),
            cancelledAt=firestore.SERVER_TIMESTAMP,
        )
