"""
Scheduling Errors

Error kinds raised by the scheduling core. All of them are validation
failures: Frappe returns them to the caller and nothing is retried.
"""

import frappe


class AppointmentValidationError(frappe.ValidationError):
	"""Base class for appointment scheduling errors."""
	pass


class InvalidTimeFormat(AppointmentValidationError):
	"""scheduled_time is not a 24h HH:MM string."""
	pass


class InvalidDuration(AppointmentValidationError):
	"""duration is outside the allowed 15-240 minute range."""
	pass


class MissingRequiredIdentity(AppointmentValidationError):
	"""Neither animal nor animal_name was supplied."""
	pass


class SchedulingConflict(AppointmentValidationError):
	"""The requested interval overlaps an active appointment of the same vet."""

	def __init__(self, message: str, conflicting_appointment=None):
		super().__init__(message)
		self.conflicting_appointment = conflicting_appointment


class InvalidTransition(AppointmentValidationError):
	"""The requested status is not reachable from the current one."""
	pass


class NotCancellable(AppointmentValidationError):
	"""Cancellation requested for a terminal appointment or too close to its start."""
	pass


class NotReschedulable(AppointmentValidationError):
	"""Reschedule requested for a terminal appointment or too close to its start."""
	pass
