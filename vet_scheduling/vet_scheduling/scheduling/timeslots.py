"""
Time and Slot Utilities

Pure helpers that turn a (date, "HH:MM", duration) triple into concrete
naive datetimes, and enumerate fixed-length candidate start times.
"""

import re
from datetime import datetime, date, time, timedelta
from typing import List, Union

from frappe.utils import getdate

from .exceptions import InvalidTimeFormat

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

DEFAULT_STEP_MINUTES = 30


def is_valid_time(value: str) -> bool:
	"""True if value is a 24h "H:MM" / "HH:MM" string."""
	return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def parse_time(value: str) -> time:
	"""
	Parse a scheduled time string.

	Args:
		value: "HH:MM" (24h). A single-digit hour ("9:30") is accepted.

	Returns:
		datetime.time with zero seconds

	Raises:
		InvalidTimeFormat: if value does not match TIME_PATTERN
	"""
	if not is_valid_time(value):
		raise InvalidTimeFormat(f"Invalid time '{value}'. Please enter time in HH:MM format")

	hours, minutes = value.split(":")
	return time(int(hours), int(minutes))


def format_time(value: Union[time, datetime]) -> str:
	"""Format a time or datetime as zero-padded "HH:MM"."""
	return value.strftime("%H:%M")


def to_date(value: Union[date, datetime, str]) -> date:
	# datetime is a subclass of date, check it first
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	return getdate(value)


def compute_start(scheduled_date: Union[date, datetime, str], scheduled_time: str) -> datetime:
	"""
	Combine a calendar date with an "HH:MM" time.

	The result is naive and expressed in the vet's local wall-clock time.

	Raises:
		InvalidTimeFormat: if scheduled_time is malformed
	"""
	return datetime.combine(to_date(scheduled_date), parse_time(scheduled_time))


def compute_end(start: datetime, duration_minutes: int) -> datetime:
	"""Return start + duration_minutes."""
	return start + timedelta(minutes=int(duration_minutes))


def enumerate_slots(
	start_hour: int,
	end_hour: int,
	step_minutes: int = DEFAULT_STEP_MINUTES
) -> List[str]:
	"""
	List every step-aligned start time in [start_hour:00, end_hour:00).

	Args:
		start_hour: first hour of the window (inclusive)
		end_hour: closing hour (exclusive)
		step_minutes: distance between two candidates

	Returns:
		list[str]: ["09:00", "09:30", ...]
	"""
	if step_minutes <= 0:
		raise ValueError("step_minutes must be positive")

	slots = []
	current = start_hour * 60
	end = end_hour * 60

	while current < end:
		hours, minutes = divmod(current, 60)
		slots.append(f"{hours:02d}:{minutes:02d}")
		current += step_minutes

	return slots
