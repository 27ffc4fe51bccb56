"""
Appointments API Domain

Handles availability queries, booking, lifecycle changes and the farmer's
or vet's own appointment lists.
"""

# Re-export endpoints from appointment_api
from vet_scheduling.api.appointment_api import (
    # Availability
    get_available_slots,
    validate_appointment,
    # CRUD
    create_appointment,
    update_appointment_status,
    cancel_appointment,
    reschedule_appointment,
    delete_appointment,
    # Queries (authenticated party)
    get_my_appointments,
    get_appointment_detail,
    get_vet_schedule,
)

__all__ = [
    # Availability
    "get_available_slots",
    "validate_appointment",
    # CRUD
    "create_appointment",
    "update_appointment_status",
    "cancel_appointment",
    "reschedule_appointment",
    "delete_appointment",
    # Queries
    "get_my_appointments",
    "get_appointment_detail",
    "get_vet_schedule",
]
