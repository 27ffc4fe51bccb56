"""
Appointment API Endpoints

Whitelisted functions for the farmer and vet apps.
Every endpoint requires a logged-in user linked to a Vet or a Farmer, and
is protected by:
- Rate limiting by IP address
- Input validation and sanitization
- Party checks (only the appointment's farmer or vet can touch it)
"""

import frappe
from frappe import _
from frappe.utils import cint, now_datetime
from typing import Dict, List, Any, Optional

# Import scheduling services
from vet_scheduling.vet_scheduling.scheduling import lifecycle
from vet_scheduling.vet_scheduling.scheduling.availability import (
	get_vet_now,
	get_vet_weekly_hours,
	resolve_day_hours,
)
from vet_scheduling.vet_scheduling.scheduling.booking import (
	parse_booking_payload,
	to_appointment_request,
	validate_appointment_request,
	validate_duration,
)
from vet_scheduling.vet_scheduling.scheduling.exceptions import AppointmentValidationError
from vet_scheduling.vet_scheduling.scheduling.overlap import DEFAULT_DURATION_MINUTES, check_overlap
from vet_scheduling.vet_scheduling.scheduling.slots import generate_available_slots
from vet_scheduling.vet_scheduling.scheduling.timeslots import compute_end, compute_start

# Import security utilities
from vet_scheduling.api.shared import (
	check_rate_limit,
	get_current_actor,
	require_party,
	require_vet,
	sanitize_string,
	validate_date_string,
	validate_docname,
	validate_time_string,
)

# Errors that already carry a message for the caller
CALLER_ERRORS = (frappe.ValidationError, frappe.PermissionError, frappe.AuthenticationError)

BOOKING_LOCK_TIMEOUT = 10

LIST_FIELDS = [
	"name",
	"farmer",
	"vet",
	"animal",
	"animal_name",
	"scheduled_date",
	"scheduled_time",
	"duration",
	"appointment_type",
	"priority",
	"status",
	"is_emergency",
	"location_type",
	"total_fee",
	"payment_status",
	"creation",
	"modified"
]

SCHEDULE_STATUSES = ("pending", "accepted", "in-progress", "completed")


# ===== HELPERS =====

def _get_appointment(appointment_name: str):
	appointment_name = validate_docname(appointment_name, "appointment_name")

	if not frappe.db.exists("Appointment", appointment_name):
		frappe.throw(_("Appointment not found"), frappe.DoesNotExistError)

	return frappe.get_doc("Appointment", appointment_name)


def _get_active_vet(vet: str):
	"""Vet document, only if it exists, is verified and accepts bookings."""
	vet = validate_docname(vet, "vet")

	if not frappe.db.exists("Vet", vet):
		frappe.throw(_("Vet not found"), frappe.DoesNotExistError)

	vet_doc = frappe.get_cached_doc("Vet", vet)
	if not vet_doc.is_active or not vet_doc.is_verified:
		frappe.throw(_("Vet is not available for appointments"))

	return vet_doc


def _booking_lock(vet: str):
	"""Redis lock serializing conflict check + write for one vet."""
	return frappe.cache.lock(f"vet_scheduling:booking:{vet}", timeout=BOOKING_LOCK_TIMEOUT)


def _increment_vet_counter(vet: str, fieldname: str) -> None:
	current = cint(frappe.db.get_value("Vet", vet, fieldname))
	frappe.db.set_value("Vet", vet, fieldname, current + 1, update_modified=False)


# ===== AVAILABILITY =====

@frappe.whitelist(methods=['GET'])
def get_available_slots(vet: str, date: str, duration: int = DEFAULT_DURATION_MINUTES) -> Dict[str, Any]:
	"""
	Obtiene los horarios libres de un vet para una fecha.

	Rate limited: 30 requests per minute per IP.

	Args:
		vet: nombre del Vet
		date: fecha (YYYY-MM-DD)
		duration: duración en minutos de la cita a reservar

	Returns:
		dict: {
			"vet": "VET-00001",
			"date": "2026-01-20",
			"duration": 30,
			"available_slots": ["09:00", "09:30", ...]
		}

	Example:
		```javascript
		frappe.call({
			method: "vet_scheduling.api.appointments.get_available_slots",
			args: {vet: "VET-00001", date: "2026-01-20"},
			callback: function(r) {
				console.log(r.message.available_slots);
			}
		});
		```
	"""
	check_rate_limit("get_available_slots", limit=30, seconds=60)

	date = validate_date_string(date, "date")

	try:
		vet_doc = _get_active_vet(vet)
		duration = validate_duration(duration)

		slots = generate_available_slots(vet_doc.name, date, duration)

		return {
			"vet": vet_doc.name,
			"date": date,
			"duration": duration,
			"available_slots": slots
		}

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_available_slots: {str(e)}", "API Error")
		frappe.throw(_("Error getting available slots"))


@frappe.whitelist(methods=['GET', 'POST'])
def validate_appointment(
	vet: str,
	scheduled_date: str,
	scheduled_time: str,
	duration: int = DEFAULT_DURATION_MINUTES,
	appointment_name: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Valida si una reserva es posible ANTES de crearla.
	Útil para mostrar errores/warnings en el formulario.

	Rate limited: 20 requests per minute per IP.

	Args:
		vet: nombre del Vet
		scheduled_date: fecha (YYYY-MM-DD)
		scheduled_time: hora (HH:MM)
		duration: duración en minutos
		appointment_name: Appointment existente a ignorar (reprogramación)

	Returns:
		dict: {
			"valid": bool,
			"errors": list[str],
			"warnings": list[str],
			"overlap_info": dict
		}
	"""
	check_rate_limit("validate_appointment", limit=20, seconds=60)

	errors = []
	warnings = []
	overlap_info = {}

	try:
		if not frappe.db.exists("Vet", vet):
			errors.append(_("Vet not found"))
			return {"valid": False, "errors": errors, "warnings": warnings, "overlap_info": overlap_info}

		scheduled_date = validate_date_string(scheduled_date, "scheduled_date")
		scheduled_time = validate_time_string(scheduled_time, "scheduled_time")
		duration = validate_duration(duration)

		# Fuera del horario del vet: se permite, pero se advierte
		hours = resolve_day_hours(get_vet_weekly_hours(vet), scheduled_date)
		start = compute_start(scheduled_date, scheduled_time)
		if hours is None:
			warnings.append(_("The vet does not work on this day"))
		elif not (hours["start_hour"] <= start.hour < hours["end_hour"]):
			warnings.append(_("The selected time is outside the vet's working hours"))

		overlap = check_overlap(
			vet,
			scheduled_date,
			scheduled_time,
			duration,
			exclude_appointment=appointment_name
		)
		overlap_info = {
			"has_conflict": overlap["has_conflict"],
			"conflicting_appointment": overlap["conflicting_appointment"],
			"start": str(overlap["start"]),
			"end": str(overlap["end"])
		}
		if overlap["has_conflict"]:
			errors.append(
				_("Vet is not available at the selected time. Please choose a different time slot.")
			)

	except frappe.ValidationError as e:
		errors.append(str(e))

	except Exception as e:
		frappe.log_error(f"Error in validate_appointment: {str(e)}", "API Error")
		errors.append(_("Error validating appointment"))

	return {
		"valid": len(errors) == 0,
		"errors": errors,
		"warnings": warnings,
		"overlap_info": overlap_info
	}


# ===== CRUD =====

@frappe.whitelist(methods=['POST'])
def create_appointment(**payload) -> Dict[str, Any]:
	"""
	Crea un appointment en estado pending, solo con vets activos y
	verificados y en un horario futuro (hora local del vet).

	El payload depende de quién reserva:
	- Farmer: vet, animal o animal_name, scheduled_date, scheduled_time,
	  symptoms, duration, appointment_type, priority, description,
	  location_type, location_address
	- Vet: farmer, animal_name, date, time, reason, notes

	Rate limited: 5 requests per minute per IP (write operation).

	Flujo:
		1. Resolver el actor (Vet o Farmer) de la sesión
		2. Convertir el payload en un AppointmentRequest (tarifas del vet incluidas)
		3. Con el lock del vet: insertar (validate bloquea solapamientos)

	Returns:
		dict: Appointment creado
	"""
	check_rate_limit("create_appointment", limit=5, seconds=60)

	actor_type, actor_id = get_current_actor()

	try:
		booking = parse_booking_payload(actor_type, actor_id, payload)
		vet_doc = _get_active_vet(booking.vet)

		request = to_appointment_request(
			booking,
			vet_fees={
				"consultation_fee": vet_doc.consultation_fee,
				"travel_fee": vet_doc.travel_fee
			}
		)
		validate_appointment_request(request, now=get_vet_now(vet_doc))

		if not frappe.db.exists("Farmer", request.farmer):
			frappe.throw(_("Farmer not found"), frappe.DoesNotExistError)

		request.description = sanitize_string(request.description, 2000) or ""
		request.location_address = sanitize_string(request.location_address, 500)

		with _booking_lock(vet_doc.name):
			appointment = frappe.get_doc(request.as_doc())
			appointment.insert(ignore_permissions=True)
			frappe.db.commit()

		frappe.logger("vet_scheduling").info(
			f"Appointment {appointment.name} booked by {actor_type} {actor_id} "
			f"(Vet: {appointment.vet}, {appointment.scheduled_date} {appointment.scheduled_time})"
		)

		return appointment.as_dict()

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in create_appointment: {str(e)}", "API Error")
		frappe.throw(_("Error creating appointment"))


@frappe.whitelist(methods=['POST', 'PUT'])
def update_appointment_status(
	appointment_name: str,
	status: Optional[str] = None,
	diagnosis: Optional[str] = None,
	treatment: Optional[str] = None,
	prescription: Optional[Any] = None,
	vet_notes: Optional[str] = None,
	follow_up_required: Optional[Any] = None,
	follow_up_date: Optional[str] = None,
	follow_up_instructions: Optional[str] = None
) -> Dict[str, Any]:
	"""
	El vet cambia el status y/o registra los datos clínicos.

	Solo el vet del appointment puede usar este endpoint. Completar o
	cancelar incrementa los contadores del vet.

	Args:
		appointment_name: nombre del Appointment
		status: nuevo status (opcional)
		prescription: lista de {medication_name, dosage, frequency, duration, instructions}
			o su JSON

	Returns:
		dict: Appointment actualizado
	"""
	check_rate_limit("update_appointment_status", limit=20, seconds=60)

	actor_type, actor_id = get_current_actor()
	require_vet(actor_type)

	try:
		appointment = _get_appointment(appointment_name)
		require_party(appointment, actor_type, actor_id)

		previous_status = appointment.status

		if status and status != previous_status:
			if status == "cancelled":
				appointment.cancelled_by = "vet"
			lifecycle.apply_transition(appointment, status, stamp_at=now_datetime())

		if diagnosis:
			appointment.diagnosis = sanitize_string(diagnosis, 2000)
		if treatment:
			appointment.treatment = sanitize_string(treatment, 2000)
		if vet_notes:
			appointment.vet_notes = sanitize_string(vet_notes, 3000)
		if follow_up_required is not None:
			appointment.follow_up_required = cint(follow_up_required)
		if follow_up_date:
			appointment.follow_up_date = validate_date_string(follow_up_date, "follow_up_date")
		if follow_up_instructions:
			appointment.follow_up_instructions = sanitize_string(follow_up_instructions, 1000)
		if prescription:
			appointment.set("prescription", [])
			for row in frappe.parse_json(prescription):
				appointment.append("prescription", row)

		appointment.save(ignore_permissions=True)

		if appointment.status != previous_status:
			if appointment.status == "completed":
				_increment_vet_counter(appointment.vet, "completed_appointments")
			elif appointment.status == "cancelled":
				_increment_vet_counter(appointment.vet, "cancelled_appointments")

		frappe.db.commit()

		return appointment.as_dict()

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in update_appointment_status: {str(e)}", "API Error")
		frappe.throw(_("Error updating appointment"))


@frappe.whitelist(methods=['POST'])
def cancel_appointment(appointment_name: str, reason: Optional[str] = None) -> Dict[str, Any]:
	"""
	El farmer o el vet cancelan el appointment.

	Solo se puede cancelar en pending/accepted y con más de 2 horas de
	anticipación (hora local del vet).

	Returns:
		dict: {
			"success": True,
			"appointment": dict,
			"message": str
		}
	"""
	check_rate_limit("cancel_appointment", limit=10, seconds=60)

	actor_type, actor_id = get_current_actor()

	try:
		appointment = _get_appointment(appointment_name)
		require_party(appointment, actor_type, actor_id)

		lifecycle.cancel_appointment(
			appointment,
			cancelled_by=actor_type,
			reason=sanitize_string(reason, 500),
			now=get_vet_now(appointment.vet),
			stamp_at=now_datetime()
		)
		appointment.save(ignore_permissions=True)

		if actor_type == "vet":
			_increment_vet_counter(appointment.vet, "cancelled_appointments")

		frappe.db.commit()

		return {
			"success": True,
			"appointment": appointment.as_dict(),
			"message": _("Appointment cancelled successfully")
		}

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in cancel_appointment: {str(e)}", "API Error")
		frappe.throw(_("Error cancelling appointment"))


@frappe.whitelist(methods=['POST'])
def reschedule_appointment(appointment_name: str, scheduled_date: str, scheduled_time: str) -> Dict[str, Any]:
	"""
	Mueve el appointment a otra fecha/hora.

	Requiere más de 6 horas de anticipación y un nuevo horario futuro
	(hora local del vet). El nuevo horario se valida
	contra los demás appointments activos del vet, excluyendo este.

	Returns:
		dict: Appointment reprogramado
	"""
	check_rate_limit("reschedule_appointment", limit=10, seconds=60)

	actor_type, actor_id = get_current_actor()

	scheduled_date = validate_date_string(scheduled_date, "scheduled_date")
	scheduled_time = validate_time_string(scheduled_time, "scheduled_time")

	try:
		appointment = _get_appointment(appointment_name)
		require_party(appointment, actor_type, actor_id)

		with _booking_lock(appointment.vet):
			lifecycle.reschedule_appointment(
				appointment,
				scheduled_date,
				scheduled_time,
				now=get_vet_now(appointment.vet)
			)
			appointment.save(ignore_permissions=True)
			frappe.db.commit()

		return appointment.as_dict()

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in reschedule_appointment: {str(e)}", "API Error")
		frappe.throw(_("Error rescheduling appointment"))


@frappe.whitelist(methods=['POST', 'DELETE'])
def delete_appointment(appointment_name: str) -> Dict[str, Any]:
	"""
	Elimina el appointment permanentemente, sin importar su status.

	Returns:
		dict: {"success": True, "message": str}
	"""
	actor_type, actor_id = get_current_actor()

	try:
		appointment = _get_appointment(appointment_name)
		require_party(appointment, actor_type, actor_id)

		frappe.delete_doc("Appointment", appointment.name, ignore_permissions=True)
		frappe.db.commit()

		frappe.logger("vet_scheduling").info(
			f"Appointment {appointment.name} deleted by {actor_type} {actor_id}"
		)

		return {
			"success": True,
			"message": _("Appointment deleted successfully")
		}

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in delete_appointment: {str(e)}", "API Error")
		frappe.throw(_("Error deleting appointment"))


# ===== QUERIES =====

@frappe.whitelist(methods=['GET'])
def get_my_appointments(
	status: Optional[str] = None,
	date: Optional[str] = None,
	page: int = 1,
	limit: int = 10
) -> Dict[str, Any]:
	"""
	Appointments del farmer o vet autenticado, paginados.

	Farmers ven los más recientes primero; vets los ven en orden de
	agenda (fecha y hora).

	Args:
		status: filtrar por status
		date: filtrar por fecha (YYYY-MM-DD)
		page: página, desde 1
		limit: appointments por página (máximo 100)

	Returns:
		dict: {
			"appointments": list[dict],
			"pagination": {"current": int, "pages": int, "total": int}
		}
	"""
	check_rate_limit("get_my_appointments", limit=30, seconds=60)

	actor_type, actor_id = get_current_actor()

	try:
		page = max(cint(page), 1)
		limit = min(max(cint(limit), 1), 100)

		filters = {actor_type: actor_id}

		if status:
			if status not in lifecycle.STATUSES:
				frappe.throw(_("Invalid status '{0}'").format(status))
			filters["status"] = status

		if date:
			filters["scheduled_date"] = validate_date_string(date, "date")

		if actor_type == "vet":
			order_by = "scheduled_date asc, scheduled_time asc"
		else:
			order_by = "creation desc"

		appointments = frappe.get_all(
			"Appointment",
			filters=filters,
			fields=LIST_FIELDS,
			order_by=order_by,
			limit_start=(page - 1) * limit,
			limit_page_length=limit
		)

		total = frappe.db.count("Appointment", filters)

		return {
			"appointments": appointments,
			"pagination": {
				"current": page,
				"pages": -(-total // limit),
				"total": total
			}
		}

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_my_appointments: {str(e)}", "API Error")
		frappe.throw(_("Error getting appointments"))


@frappe.whitelist(methods=['GET'])
def get_appointment_detail(appointment_name: str) -> Dict[str, Any]:
	"""
	Detalle completo de un appointment. Solo para su farmer o su vet.

	Returns:
		dict: Appointment con vet_name y farmer_name
	"""
	check_rate_limit("get_appointment_detail", limit=30, seconds=60)

	actor_type, actor_id = get_current_actor()

	try:
		appointment = _get_appointment(appointment_name)
		require_party(appointment, actor_type, actor_id)

		result = appointment.as_dict()
		result["vet_name"] = frappe.db.get_value("Vet", appointment.vet, "vet_name")
		result["farmer_name"] = frappe.db.get_value("Farmer", appointment.farmer, "farmer_name")

		return result

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_appointment_detail: {str(e)}", "API Error")
		frappe.throw(_("Error getting appointment"))


@frappe.whitelist(methods=['GET'])
def get_vet_schedule(vet: str, date: str) -> List[Dict[str, Any]]:
	"""
	Agenda de un vet en una fecha: appointments activos y completados,
	ordenados por hora.

	El propio vet ve cada appointment completo; los demás solo ven los
	bloques ocupados (hora, duración, status).

	Returns:
		list[dict]: [{"scheduled_time": "09:00", "end_time": "09:30", "duration": 30, "status": "accepted"}, ...]
	"""
	check_rate_limit("get_vet_schedule", limit=30, seconds=60)

	actor_type, actor_id = get_current_actor()

	vet = validate_docname(vet, "vet")
	date = validate_date_string(date, "date")

	try:
		if not frappe.db.exists("Vet", vet):
			frappe.throw(_("Vet not found"), frappe.DoesNotExistError)

		appointments = frappe.get_all(
			"Appointment",
			filters={
				"vet": vet,
				"scheduled_date": date,
				"status": ["in", list(SCHEDULE_STATUSES)]
			},
			fields=LIST_FIELDS
		)

		is_own_schedule = actor_type == "vet" and actor_id == vet
		schedule = []
		for apt in appointments:
			try:
				start = compute_start(apt.scheduled_date, apt.scheduled_time)
			except AppointmentValidationError:
				frappe.logger("vet_scheduling").warning(
					f"Skipping appointment {apt.name} in schedule: "
					f"malformed scheduled_time {apt.scheduled_time!r}"
				)
				continue

			end = compute_end(start, apt.duration or DEFAULT_DURATION_MINUTES)

			if is_own_schedule:
				entry = dict(apt)
			else:
				entry = {
					"scheduled_time": apt.scheduled_time,
					"duration": apt.duration,
					"status": apt.status
				}
			entry["start"] = start
			entry["end_time"] = end.strftime("%H:%M")
			schedule.append(entry)

		schedule.sort(key=lambda entry: entry["start"])
		for entry in schedule:
			entry.pop("start")

		return schedule

	except CALLER_ERRORS:
		raise
	except Exception as e:
		frappe.log_error(f"Error in get_vet_schedule: {str(e)}", "API Error")
		frappe.throw(_("Error getting vet schedule"))
