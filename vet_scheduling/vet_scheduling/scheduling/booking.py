"""
Booking Requests

Farmers and vets book appointments with different payloads. The payload is
resolved once, at the API boundary, into a FarmerBookingRequest or a
VetBookingRequest, and then converted into a single AppointmentRequest that
the rest of the code consumes.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Union

from .exceptions import (
	AppointmentValidationError,
	InvalidDuration,
	MissingRequiredIdentity,
)
from .overlap import DEFAULT_DURATION_MINUTES
from .timeslots import compute_start, parse_time, to_date

APPOINTMENT_TYPES = ("consultation", "vaccination", "checkup", "emergency", "surgery", "follow-up")
PRIORITIES = ("low", "normal", "high", "emergency")
LOCATION_TYPES = ("clinic", "farm", "online")

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 240
MAX_SYMPTOMS_LENGTH = 1000
MAX_ANIMAL_NAME_LENGTH = 100


@dataclass
class FarmerBookingRequest:
	"""Booking made by a farmer for one of their animals."""

	farmer: str
	vet: str
	scheduled_date: str
	scheduled_time: str
	symptoms: str
	animal: Optional[str] = None
	animal_name: Optional[str] = None
	duration: Any = DEFAULT_DURATION_MINUTES
	appointment_type: str = "consultation"
	priority: str = "normal"
	description: str = ""
	location_type: str = "clinic"
	location_address: Optional[str] = None


@dataclass
class VetBookingRequest:
	"""Booking entered by a vet on behalf of a farmer; the animal is free text."""

	vet: str
	farmer: str
	animal_name: str
	date: str
	time: str
	reason: str
	notes: str = ""


@dataclass
class AppointmentRequest:
	"""Normalized booking, independent of who created it."""

	farmer: str
	vet: str
	scheduled_date: date
	scheduled_time: str
	symptoms: str
	animal: Optional[str] = None
	animal_name: Optional[str] = None
	duration: int = DEFAULT_DURATION_MINUTES
	appointment_type: str = "consultation"
	priority: str = "normal"
	description: str = ""
	location_type: str = "clinic"
	location_address: Optional[str] = None
	consultation_fee: float = 0
	travel_fee: float = 0
	status: str = field(default="pending", init=False)

	def as_doc(self) -> Dict[str, Any]:
		"""Fields for frappe.get_doc({"doctype": "Appointment", ...})."""
		doc = asdict(self)
		doc["doctype"] = "Appointment"
		doc["scheduled_date"] = self.scheduled_date.isoformat()
		return doc


BookingRequest = Union[FarmerBookingRequest, VetBookingRequest]


def _require(payload: Mapping[str, Any], keys, message: str) -> None:
	if any(not payload.get(key) for key in keys):
		raise AppointmentValidationError(message)


def _clean(value: Any) -> str:
	return (value or "").strip()


def parse_booking_payload(actor_type: str, actor_id: str, payload: Mapping[str, Any]) -> BookingRequest:
	"""
	Resuelve el payload según quién reserva.

	Args:
		actor_type: "farmer" o "vet"
		actor_id: name del Farmer o Vet autenticado
		payload: campos recibidos por la API

	Returns:
		FarmerBookingRequest o VetBookingRequest

	Raises:
		AppointmentValidationError: actor desconocido o faltan campos requeridos
		MissingRequiredIdentity: no se identifica al animal (ni animal ni animal_name)
	"""
	if actor_type == "farmer":
		_require(
			payload,
			("vet", "scheduled_date", "scheduled_time", "symptoms"),
			"Vet, scheduled date, time, and symptoms are required"
		)
		if not payload.get("animal") and not payload.get("animal_name"):
			raise MissingRequiredIdentity("Either an animal or an animal name is required")

		return FarmerBookingRequest(
			farmer=actor_id,
			vet=payload["vet"],
			animal=payload.get("animal") or None,
			animal_name=_clean(payload.get("animal_name")) or None,
			scheduled_date=payload["scheduled_date"],
			scheduled_time=_clean(payload["scheduled_time"]),
			symptoms=_clean(payload["symptoms"]),
			duration=payload.get("duration", DEFAULT_DURATION_MINUTES),
			appointment_type=payload.get("appointment_type") or "consultation",
			priority=payload.get("priority") or "normal",
			description=_clean(payload.get("description")),
			location_type=payload.get("location_type") or "clinic",
			location_address=payload.get("location_address"),
		)

	if actor_type == "vet":
		if not _clean(payload.get("animal_name")):
			raise MissingRequiredIdentity("Animal name is required")
		_require(
			payload,
			("farmer", "date", "time", "reason"),
			"Farmer, animal name, date, time, and reason are required"
		)

		# El vet siempre es el autenticado, nunca el del payload
		return VetBookingRequest(
			vet=actor_id,
			farmer=payload["farmer"],
			animal_name=_clean(payload["animal_name"]),
			date=payload["date"],
			time=_clean(payload["time"]),
			reason=_clean(payload["reason"]),
			notes=_clean(payload.get("notes")),
		)

	raise AppointmentValidationError("Only farmers and vets can create appointments")


def to_appointment_request(
	request: BookingRequest,
	vet_fees: Optional[Mapping[str, Any]] = None
) -> AppointmentRequest:
	"""
	Convert either booking shape into an AppointmentRequest.

	Farmer bookings carry the vet's consultation fee, plus the travel fee for
	farm visits. Vet-entered bookings are free of charge.
	"""
	if isinstance(request, FarmerBookingRequest):
		vet_fees = vet_fees or {}
		travel_fee = 0
		if request.location_type == "farm":
			travel_fee = vet_fees.get("travel_fee") or 0

		return AppointmentRequest(
			farmer=request.farmer,
			vet=request.vet,
			animal=request.animal,
			animal_name=request.animal_name,
			scheduled_date=to_date(request.scheduled_date),
			scheduled_time=request.scheduled_time,
			duration=request.duration,
			symptoms=request.symptoms,
			appointment_type=request.appointment_type,
			priority=request.priority,
			description=request.description,
			location_type=request.location_type,
			location_address=request.location_address,
			consultation_fee=vet_fees.get("consultation_fee") or 0,
			travel_fee=travel_fee,
		)

	if isinstance(request, VetBookingRequest):
		return AppointmentRequest(
			farmer=request.farmer,
			vet=request.vet,
			animal_name=request.animal_name,
			scheduled_date=to_date(request.date),
			scheduled_time=request.time,
			symptoms=request.reason,
			description=request.notes,
		)

	raise TypeError(f"Unsupported booking request: {type(request).__name__}")


def validate_duration(duration: Any) -> int:
	"""
	Raises:
		InvalidDuration: not an integer between 15 and 240
	"""
	if isinstance(duration, float) and not duration.is_integer():
		raise InvalidDuration(f"Duration must be a whole number of minutes, got {duration}")

	try:
		minutes = int(duration)
	except (TypeError, ValueError):
		raise InvalidDuration(f"Invalid duration '{duration}'")

	if not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
		raise InvalidDuration(
			f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
		)
	return minutes


def validate_appointment_request(
	request: AppointmentRequest,
	now: Optional[datetime] = None
) -> AppointmentRequest:
	"""
	Validate a normalized booking before any overlap check.

	Args:
		request: booking to check
		now: vet's wall clock; when given, the start must be later than it

	Raises:
		InvalidTimeFormat, InvalidDuration, MissingRequiredIdentity, AppointmentValidationError
	"""
	parse_time(request.scheduled_time)
	request.duration = validate_duration(request.duration)

	if not request.animal and not request.animal_name:
		raise MissingRequiredIdentity("Either an animal or an animal name is required")

	if request.animal_name and len(request.animal_name) > MAX_ANIMAL_NAME_LENGTH:
		raise AppointmentValidationError(
			f"Animal name cannot exceed {MAX_ANIMAL_NAME_LENGTH} characters"
		)

	if not request.symptoms:
		raise AppointmentValidationError("Symptoms description is required")
	if len(request.symptoms) > MAX_SYMPTOMS_LENGTH:
		raise AppointmentValidationError(
			f"Symptoms description cannot exceed {MAX_SYMPTOMS_LENGTH} characters"
		)

	if request.appointment_type not in APPOINTMENT_TYPES:
		raise AppointmentValidationError(f"Invalid appointment type '{request.appointment_type}'")
	if request.priority not in PRIORITIES:
		raise AppointmentValidationError(f"Invalid priority '{request.priority}'")
	if request.location_type not in LOCATION_TYPES:
		raise AppointmentValidationError(f"Invalid location type '{request.location_type}'")

	if now is not None and compute_start(request.scheduled_date, request.scheduled_time) <= now:
		raise AppointmentValidationError("Appointment time must be in the future")

	return request
