"""
Overlap Detection Service

Detects scheduling conflicts between a proposed appointment and a vet's
existing appointments for the same day, considering:
- Appointment status (only the active set blocks a slot)
- Half-open intervals (touching endpoints do not conflict)
- Exclusion of the appointment being rescheduled
"""

import frappe
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .exceptions import InvalidTimeFormat, SchedulingConflict
from .timeslots import compute_end, compute_start, to_date

ACTIVE_STATUSES = ("pending", "accepted", "in-progress")

DEFAULT_DURATION_MINUTES = 30


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
	"""[start_a, end_a) and [start_b, end_b) share at least one instant."""
	return start_a < end_b and start_b < end_a


def appointment_interval(appointment: Any) -> Tuple[datetime, datetime]:
	"""
	Intervalo [start, end) de un appointment existente.

	Raises:
		InvalidTimeFormat: si scheduled_time está mal formado
	"""
	start = compute_start(appointment.get("scheduled_date"), appointment.get("scheduled_time"))
	duration = appointment.get("duration") or DEFAULT_DURATION_MINUTES
	return start, compute_end(start, duration)


def find_conflict(
	existing_appointments: Iterable[Any],
	proposed_start: datetime,
	proposed_end: datetime,
	exclude_appointment: Optional[str] = None
) -> Optional[Any]:
	"""
	Busca el primer appointment que se solapa con [proposed_start, proposed_end).

	Args:
		existing_appointments: appointments del mismo vet y fecha
		proposed_start: inicio propuesto
		proposed_end: fin propuesto
		exclude_appointment: name del appointment a ignorar (reprogramación)

	Returns:
		El appointment en conflicto, o None

	Algoritmo:
		1. Ignorar el appointment excluido y los que no están en ACTIVE_STATUSES
		2. Calcular [start, start + duration) de cada uno
		3. Si scheduled_time está corrupto, registrar y seguir
		4. Retornar en el primer solapamiento
	"""
	for appointment in existing_appointments:
		name = appointment.get("name")
		if exclude_appointment and name == exclude_appointment:
			continue

		if appointment.get("status") not in ACTIVE_STATUSES:
			continue

		try:
			start, end = appointment_interval(appointment)
		except InvalidTimeFormat:
			frappe.logger("vet_scheduling").warning(
				f"Skipping appointment {name} in overlap check: "
				f"malformed scheduled_time {appointment.get('scheduled_time')!r}"
			)
			continue

		if intervals_overlap(proposed_start, proposed_end, start, end):
			return appointment

	return None


def has_conflict(
	existing_appointments: Iterable[Any],
	proposed_start: datetime,
	proposed_end: datetime,
	exclude_appointment: Optional[str] = None
) -> bool:
	"""True if the proposed interval overlaps any active appointment."""
	return find_conflict(
		existing_appointments, proposed_start, proposed_end, exclude_appointment
	) is not None


# ===== FRAPPE QUERIES =====

def get_active_appointments(
	vet: str,
	scheduled_date: Union[date, datetime, str],
	exclude_appointment: Optional[str] = None
) -> List[Dict[str, Any]]:
	"""
	Appointments del vet en la fecha con status en ACTIVE_STATUSES.
	"""
	filters = {
		"vet": vet,
		"scheduled_date": to_date(scheduled_date),
		"status": ["in", list(ACTIVE_STATUSES)]
	}

	# Excluir appointment si se especifica (para reprogramaciones)
	if exclude_appointment:
		filters["name"] = ["!=", exclude_appointment]

	return frappe.get_all(
		"Appointment",
		filters=filters,
		fields=["name", "status", "scheduled_date", "scheduled_time", "duration"],
		order_by="scheduled_time asc"
	)


def check_overlap(
	vet: str,
	scheduled_date: Union[date, datetime, str],
	scheduled_time: str,
	duration: int = DEFAULT_DURATION_MINUTES,
	exclude_appointment: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Detecta conflictos para una reserva propuesta.

	Returns:
		dict: {
			"has_conflict": bool,
			"conflicting_appointment": name o None,
			"start": datetime,
			"end": datetime
		}

	Raises:
		InvalidTimeFormat: antes de consultar, si scheduled_time está mal formado
	"""
	start = compute_start(scheduled_date, scheduled_time)
	end = compute_end(start, duration or DEFAULT_DURATION_MINUTES)

	existing = get_active_appointments(vet, scheduled_date, exclude_appointment)
	conflict = find_conflict(existing, start, end, exclude_appointment)

	return {
		"has_conflict": conflict is not None,
		"conflicting_appointment": conflict.get("name") if conflict else None,
		"start": start,
		"end": end
	}


def ensure_no_conflict(
	vet: str,
	scheduled_date: Union[date, datetime, str],
	scheduled_time: str,
	duration: int = DEFAULT_DURATION_MINUTES,
	exclude_appointment: Optional[str] = None
) -> None:
	"""
	Raises:
		SchedulingConflict: if the vet already has an active appointment in the interval
	"""
	result = check_overlap(vet, scheduled_date, scheduled_time, duration, exclude_appointment)

	if result["has_conflict"]:
		raise SchedulingConflict(
			"Vet is not available at the selected time. Please choose a different time slot.",
			conflicting_appointment=result["conflicting_appointment"]
		)
