"""
Scheduling Services Module

This module provides core business logic for vet appointment scheduling:
- Error kinds (exceptions.py)
- Time and slot helpers (timeslots.py)
- Working-hours resolution (availability.py)
- Overlap detection (overlap.py)
- Appointment lifecycle (lifecycle.py)
- Booking request shapes (booking.py)
- Slot generation for UI (slots.py)
- Scheduled tasks (tasks.py)
"""
