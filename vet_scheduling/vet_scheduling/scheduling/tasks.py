"""
Scheduled Tasks

Background tasks that run periodically:
- cancel_lapsed_pending_appointments: cancels pending appointments the vet
  never accepted before their start time
"""

import frappe
from frappe.utils import add_days, now_datetime, nowdate

from .availability import get_vet_now
from .lifecycle import appointment_start, cancel_appointment
from .exceptions import InvalidTimeFormat
from .timeslots import to_date

LAPSED_REASON = "Not accepted by the vet before the scheduled time"


def cancel_lapsed_pending_appointments() -> int:
	"""
	Cancela appointments pending cuyo inicio ya pasó.
	Se ejecuta cada hora (configurado en hooks.py).

	Algoritmo:
		1. Buscar Appointments con status = "pending" y scheduled_date <= hoy
		2. Para cada uno, comparar el inicio con la hora local del vet
		3. Si ya empezó: cancelled_by = "system", guardar
		4. Un error en un appointment no detiene a los demás

	Returns:
		int: cantidad de appointments cancelados
	"""
	logger = frappe.logger("vet_scheduling")

	# Un día de margen: el vet puede estar en una zona horaria adelantada
	candidates = frappe.get_all(
		"Appointment",
		filters={
			"status": "pending",
			"scheduled_date": ["<=", add_days(nowdate(), 1)]
		},
		fields=["name", "vet", "scheduled_date", "scheduled_time", "duration", "status"]
	)

	cancelled_count = 0
	now_by_vet = {}
	stamp_at = now_datetime()

	for candidate in candidates:
		try:
			if candidate.vet not in now_by_vet:
				now_by_vet[candidate.vet] = get_vet_now(candidate.vet)
			vet_now = now_by_vet[candidate.vet]

			if appointment_start(candidate) > vet_now:
				continue

			appointment = frappe.get_doc("Appointment", candidate.name)

			# Verificar nuevamente por si cambió durante la consulta
			if appointment.status != "pending":
				continue

			cancel_appointment(
				appointment,
				cancelled_by="system",
				reason=LAPSED_REASON,
				now=vet_now,
				enforce_window=False,
				stamp_at=stamp_at
			)
			appointment.save(ignore_permissions=True)

			cancelled_count += 1

			logger.info(
				f"Lapsed appointment cancelled: {appointment.name} "
				f"(Vet: {appointment.vet}, Scheduled: {to_date(appointment.scheduled_date)} "
				f"{appointment.scheduled_time})"
			)

		except InvalidTimeFormat:
			logger.warning(
				f"Skipping appointment {candidate.name}: malformed scheduled_time "
				f"{candidate.scheduled_time!r}"
			)
		except Exception as e:
			logger.error(f"Error cancelling lapsed appointment {candidate.name}: {str(e)}")
			continue

	if cancelled_count > 0:
		logger.info(f"cancel_lapsed_pending_appointments: {cancelled_count} appointments cancelled")

	frappe.db.commit()

	return cancelled_count
