"""
Availability Service

Resolves whether a vet works on a given date and, if so, the open hours,
from the vet's weekly working-hours table. Also provides the vet's current
wall-clock time, used by the cancel/reschedule eligibility windows.
"""

import frappe
from datetime import datetime, date
from typing import Any, Dict, Iterable, Mapping, Optional, Union
import pytz
from frappe.utils import get_system_timezone

from .timeslots import parse_time, to_date

# 0 = Sunday, same ordering as the vets' weekly table
WEEKDAYS = [
	"sunday",
	"monday",
	"tuesday",
	"wednesday",
	"thursday",
	"friday",
	"saturday",
]

DEFAULT_START_HOUR = 9
DEFAULT_END_HOUR = 17


def weekday_index(target_date: Union[date, datetime, str]) -> int:
	"""Day of week with 0 = Sunday ... 6 = Saturday."""
	return (to_date(target_date).weekday() + 1) % 7


def weekday_name(target_date: Union[date, datetime, str]) -> str:
	return WEEKDAYS[weekday_index(target_date)]


def _field(entry: Any, key: str) -> Any:
	if entry is None:
		return None
	if isinstance(entry, Mapping):
		return entry.get(key)
	return getattr(entry, key, None)


def _as_weekday_map(weekly_hours: Union[Mapping[str, Any], Iterable[Any], None]) -> Dict[str, Any]:
	"""
	Normaliza el horario semanal a {weekday: entry}.

	Acepta un dict indexado por weekday o la lista de filas de la tabla
	hija 'Vet Working Hours' (cada fila con campo weekday).
	"""
	if not weekly_hours:
		return {}

	if isinstance(weekly_hours, Mapping):
		return {str(day).lower(): entry for day, entry in weekly_hours.items()}

	result = {}
	for row in weekly_hours:
		day = _field(row, "weekday")
		if day:
			result[str(day).lower()] = row
	return result


def _hour_of(value: Optional[str], default: int) -> int:
	if not value:
		return default
	return parse_time(value).hour


def resolve_day_hours(
	weekly_hours: Union[Mapping[str, Any], Iterable[Any], None],
	target_date: Union[date, datetime, str]
) -> Optional[Dict[str, int]]:
	"""
	Obtiene las horas de atención de un vet para una fecha.

	Args:
		weekly_hours: {"monday": {"start": "09:00", "end": "17:00", "available": True}, ...}
			o filas de la tabla hija con weekday/start_time/end_time/available
		target_date: fecha (date, datetime o YYYY-MM-DD)

	Returns:
		None si el vet no atiende ese día, o
		{"start_hour": int, "end_hour": int} con el intervalo [start, end)

	Algoritmo:
		1. Fecha -> día de semana (0 = domingo)
		2. Buscar la entrada de ese día
		3. Sin entrada o available = False -> cerrado
		4. Horas por defecto 9 y 17 si faltan start/end
	"""
	day_map = _as_weekday_map(weekly_hours)
	entry = day_map.get(weekday_name(target_date))

	if entry is None or not _field(entry, "available"):
		return None

	start = _field(entry, "start")
	if start is None:
		start = _field(entry, "start_time")
	end = _field(entry, "end")
	if end is None:
		end = _field(entry, "end_time")

	return {
		"start_hour": _hour_of(start, DEFAULT_START_HOUR),
		"end_hour": _hour_of(end, DEFAULT_END_HOUR),
	}


def wall_clock_now(tz_name: Optional[str], now_utc: Optional[datetime] = None) -> datetime:
	"""
	Current wall-clock time in tz_name, as a naive datetime.

	Appointments are stored naive in the vet's local time, so eligibility
	windows compare against this value. Unknown timezones fall back to UTC.
	"""
	try:
		tz = pytz.timezone(tz_name or "UTC")
	except pytz.UnknownTimeZoneError:
		frappe.logger("vet_scheduling").warning(f"Invalid timezone '{tz_name}', using UTC")
		tz = pytz.UTC

	if now_utc is None:
		now_utc = datetime.now(pytz.UTC)
	elif now_utc.tzinfo is None:
		now_utc = pytz.UTC.localize(now_utc)

	return now_utc.astimezone(tz).replace(tzinfo=None)


# ===== FRAPPE READS =====

def get_vet_timezone(vet: Union[str, Any]) -> str:
	"""Timezone of a Vet, defaulting to the system timezone."""
	if isinstance(vet, str):
		vet = frappe.get_cached_doc("Vet", vet)
	return vet.timezone or get_system_timezone()


def get_vet_now(vet: Union[str, Any]) -> datetime:
	return wall_clock_now(get_vet_timezone(vet))


def get_vet_weekly_hours(vet: Union[str, Any]) -> Dict[str, Dict[str, Any]]:
	"""
	Lee la tabla 'working_hours' de un Vet.

	Returns:
		dict: {"monday": {"start": "09:00", "end": "17:00", "available": True}, ...}
	"""
	if isinstance(vet, str):
		vet = frappe.get_cached_doc("Vet", vet)

	return {
		row.weekday.lower(): {
			"start": row.start_time,
			"end": row.end_time,
			"available": bool(row.available),
		}
		for row in (vet.working_hours or [])
		if row.weekday
	}
