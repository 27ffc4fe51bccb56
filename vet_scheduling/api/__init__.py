"""
Vet Scheduling API

Structure:
    api/
    ├── __init__.py              # This file
    ├── appointments/            # Appointments domain
    │   └── __init__.py          # Re-exports from appointment_api
    ├── shared/                  # Shared utilities
    │   ├── __init__.py          # Re-exports security + validators
    │   └── validators.py        # Input validators
    ├── appointment_api.py       # All whitelisted endpoints
    └── security.py              # Rate limiting and party resolution

Usage:
    frappe.call("vet_scheduling.api.appointments.get_my_appointments", ...)
    frappe.call("vet_scheduling.api.appointment_api.get_my_appointments", ...)
"""

from . import appointments
from . import shared

__all__ = [
    "appointments",
    "shared",
]
