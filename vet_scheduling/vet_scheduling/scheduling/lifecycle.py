"""
Appointment Lifecycle

Status transitions, derived fields and the cancel/reschedule eligibility
windows of a single appointment. Everything here is pure: the caller loads
the appointment, calls these functions, then persists it.

Appointments may be dicts, frappe._dict or Appointment documents.

Two clocks are involved. Eligibility windows compare the naive start against
the vet's wall clock (`now`); status timestamps are stored in system time
(`stamp_at`, defaults to frappe.utils.now_datetime).
"""

from datetime import datetime, date
from typing import Any, Optional, Union

from frappe.utils import now_datetime

from .exceptions import InvalidTransition, NotCancellable, NotReschedulable
from .timeslots import compute_start, parse_time, to_date

STATUSES = ("pending", "accepted", "rejected", "in-progress", "completed", "cancelled")

TERMINAL_STATUSES = ("completed", "rejected", "cancelled")

TRANSITIONS = {
	"pending": ("accepted", "rejected", "cancelled", "completed"),
	"accepted": ("in-progress", "completed", "cancelled"),
	"in-progress": ("completed", "cancelled"),
	"completed": (),
	"rejected": (),
	"cancelled": (),
}

STATUS_TIMESTAMP_FIELDS = {
	"accepted": "accepted_at",
	"rejected": "rejected_at",
	"completed": "completed_at",
	"cancelled": "cancelled_at",
}

CANCELLED_BY = ("farmer", "vet", "system")

MODIFIABLE_STATUSES = ("pending", "accepted")
CANCEL_WINDOW_HOURS = 2
RESCHEDULE_WINDOW_HOURS = 6


def _set(appointment: Any, field: str, value: Any) -> None:
	if isinstance(appointment, dict):
		appointment[field] = value
	else:
		setattr(appointment, field, value)


def can_transition(current_status: str, new_status: str) -> bool:
	"""Re-entering the current status is always allowed (no-op)."""
	if new_status not in STATUSES:
		return False
	if current_status == new_status:
		return True
	return new_status in TRANSITIONS.get(current_status, ())


def validate_transition(current_status: str, new_status: str) -> None:
	"""
	Raises:
		InvalidTransition: unknown status, or new_status not reachable from current_status
	"""
	if new_status not in STATUSES:
		raise InvalidTransition(f"Unknown appointment status '{new_status}'")

	if not can_transition(current_status, new_status):
		if current_status in TERMINAL_STATUSES:
			raise InvalidTransition(
				f"Appointment is already {current_status} and cannot be changed to {new_status}"
			)
		raise InvalidTransition(f"Cannot change appointment status from {current_status} to {new_status}")


def normalize_appointment(appointment: Any, stamp_at: Optional[datetime] = None) -> Any:
	"""
	Recalcula los campos derivados justo antes de persistir.

	- total_fee = consultation_fee + travel_fee, si alguno está presente
	- timestamp del status actual (accepted_at, ...), solo si no existe,
	  en hora del sistema (stamp_at)
	- is_emergency = 1 si priority = emergency (nunca se desmarca)

	Returns:
		el mismo appointment, modificado
	"""
	consultation_fee = appointment.get("consultation_fee")
	travel_fee = appointment.get("travel_fee")
	if consultation_fee is not None or travel_fee is not None:
		_set(appointment, "total_fee", (consultation_fee or 0) + (travel_fee or 0))

	timestamp_field = STATUS_TIMESTAMP_FIELDS.get(appointment.get("status"))
	if timestamp_field and not appointment.get(timestamp_field):
		_set(appointment, timestamp_field, stamp_at or now_datetime())

	# Solo en una dirección: bajar la prioridad no limpia el flag
	if appointment.get("priority") == "emergency":
		_set(appointment, "is_emergency", 1)

	return appointment


def apply_transition(appointment: Any, new_status: str, stamp_at: Optional[datetime] = None) -> Any:
	"""
	Validate and apply a status change, then refresh derived fields.

	Raises:
		InvalidTransition: if new_status is not reachable; the appointment is untouched
	"""
	validate_transition(appointment.get("status"), new_status)
	_set(appointment, "status", new_status)
	return normalize_appointment(appointment, stamp_at)


def appointment_start(appointment: Any) -> datetime:
	return compute_start(appointment.get("scheduled_date"), appointment.get("scheduled_time"))


def hours_until_start(appointment: Any, now: datetime) -> float:
	return (appointment_start(appointment) - now).total_seconds() / 3600


def can_be_cancelled(appointment: Any, now: datetime) -> bool:
	return (
		appointment.get("status") in MODIFIABLE_STATUSES
		and hours_until_start(appointment, now) > CANCEL_WINDOW_HOURS
	)


def can_be_rescheduled(appointment: Any, now: datetime) -> bool:
	return (
		appointment.get("status") in MODIFIABLE_STATUSES
		and hours_until_start(appointment, now) > RESCHEDULE_WINDOW_HOURS
	)


def cancel_appointment(
	appointment: Any,
	cancelled_by: str,
	reason: Optional[str] = None,
	now: Optional[datetime] = None,
	enforce_window: bool = True,
	stamp_at: Optional[datetime] = None
) -> Any:
	"""
	Cancela un appointment registrando quién y por qué.

	Args:
		appointment: appointment a cancelar
		cancelled_by: "farmer", "vet" o "system"
		reason: motivo libre
		now: hora actual en el horario local del vet
		enforce_window: False para cancelaciones del sistema (el plazo de 2h no aplica)
		stamp_at: hora del sistema para cancelled_at

	Raises:
		NotCancellable: estado terminal o menos de 2 horas para el inicio
		InvalidTransition: cancelled_by no reconocido
	"""
	if now is None:
		now = now_datetime()

	if cancelled_by not in CANCELLED_BY:
		raise InvalidTransition(f"Unknown cancelling party '{cancelled_by}'")

	status = appointment.get("status")
	if status in TERMINAL_STATUSES:
		raise NotCancellable(f"Appointment cannot be cancelled: it is already {status}")

	if enforce_window and not can_be_cancelled(appointment, now):
		if status not in MODIFIABLE_STATUSES:
			raise NotCancellable(f"Appointment cannot be cancelled while {status}")
		raise NotCancellable(
			f"Appointment cannot be cancelled less than {CANCEL_WINDOW_HOURS} hours before it starts"
		)

	_set(appointment, "cancelled_by", cancelled_by)
	_set(appointment, "cancellation_reason", reason)
	return apply_transition(appointment, "cancelled", stamp_at)


def reschedule_appointment(
	appointment: Any,
	new_date: Union[date, datetime, str],
	new_time: str,
	now: Optional[datetime] = None
) -> Any:
	"""
	Move an appointment to a new date/time in place.

	The caller must check the new slot for conflicts, excluding this
	appointment, before persisting.

	Raises:
		NotReschedulable: terminal state, less than 6 hours before the current start,
			or the new start is not in the future
		InvalidTimeFormat: if new_time is malformed
	"""
	if now is None:
		now = now_datetime()

	parse_time(new_time)

	if not can_be_rescheduled(appointment, now):
		status = appointment.get("status")
		if status not in MODIFIABLE_STATUSES:
			raise NotReschedulable(f"Appointment cannot be rescheduled while {status}")
		raise NotReschedulable(
			f"Appointment cannot be rescheduled less than {RESCHEDULE_WINDOW_HOURS} hours before it starts"
		)

	if compute_start(new_date, new_time) <= now:
		raise NotReschedulable("Appointment cannot be moved to a time that has already passed")

	_set(appointment, "scheduled_date", to_date(new_date))
	_set(appointment, "scheduled_time", new_time)
	return appointment
