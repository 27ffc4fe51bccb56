"""
Slot Generation Service

Generates the bookable start times of a vet for one day, considering:
- The vet's weekly working hours
- Existing active appointments
- The duration the farmer wants to book

Slots are recomputed on every request, never cached.
"""

from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Union

from .availability import get_vet_weekly_hours, resolve_day_hours
from .overlap import DEFAULT_DURATION_MINUTES, find_conflict, get_active_appointments
from .timeslots import DEFAULT_STEP_MINUTES, compute_end, compute_start, enumerate_slots


def get_available_slots(
	weekly_hours: Union[Mapping[str, Any], Iterable[Any], None],
	target_date: Union[date, datetime, str],
	existing_appointments: Iterable[Any],
	duration: int = DEFAULT_DURATION_MINUTES,
	step_minutes: int = DEFAULT_STEP_MINUTES
) -> List[str]:
	"""
	Start times ("HH:MM") a new appointment of `duration` minutes can take.

	Args:
		weekly_hours: horario semanal del vet
		target_date: fecha solicitada
		existing_appointments: appointments del vet para esa fecha
		duration: duración pedida en minutos
		step_minutes: separación entre slots candidatos

	Returns:
		list[str]: ["09:00", "09:30", ...] en orden cronológico

	Algoritmo:
		1. Resolver disponibilidad del día; si está cerrado, []
		2. Enumerar los slots candidatos dentro del horario
		3. Conservar los que no se solapan con appointments activos
	"""
	hours = resolve_day_hours(weekly_hours, target_date)
	if hours is None:
		return []

	existing_appointments = list(existing_appointments)
	available = []

	for candidate in enumerate_slots(hours["start_hour"], hours["end_hour"], step_minutes):
		start = compute_start(target_date, candidate)
		end = compute_end(start, duration)

		if find_conflict(existing_appointments, start, end) is None:
			available.append(candidate)

	return available


def generate_available_slots(
	vet: str,
	target_date: Union[date, datetime, str],
	duration: int = DEFAULT_DURATION_MINUTES,
	step_minutes: int = DEFAULT_STEP_MINUTES
) -> List[str]:
	"""Load the vet's hours and same-day appointments, then enumerate slots."""
	return get_available_slots(
		get_vet_weekly_hours(vet),
		target_date,
		get_active_appointments(vet, target_date),
		duration=duration,
		step_minutes=step_minutes
	)
