# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Appointment DocType

A farmer's booking with a vet, and its lifecycle from pending to a
terminal status.
"""

import frappe
from frappe import _
from frappe.model.document import Document

# Import scheduling services
from vet_scheduling.vet_scheduling.scheduling.booking import (
	MAX_SYMPTOMS_LENGTH,
	validate_duration,
)
from vet_scheduling.vet_scheduling.scheduling.exceptions import (
	InvalidTransition,
	MissingRequiredIdentity,
)
from vet_scheduling.vet_scheduling.scheduling.lifecycle import (
	normalize_appointment,
	validate_transition,
)
from vet_scheduling.vet_scheduling.scheduling.overlap import ACTIVE_STATUSES, ensure_no_conflict
from vet_scheduling.vet_scheduling.scheduling.timeslots import parse_time

SCHEDULE_FIELDS = ("vet", "scheduled_date", "scheduled_time", "duration")

TEXT_LIMITS = {
	"description": 2000,
	"vet_notes": 3000,
	"farmer_notes": 1000,
	"review": 500,
}


class Appointment(Document):
	"""
	Appointment DocType with scheduling validation.

	Flujo:
	1. Farmer o vet crea el appointment en pending -> se valida que el slot esté libre
	2. El vet lo acepta o rechaza; luego in-progress / completed
	3. Cualquiera de las partes puede cancelarlo (ver lifecycle.cancel_appointment)

	Los campos derivados (total_fee, *_at, is_emergency) se calculan en
	normalize_appointment, llamado al final de validate. Los *_at quedan en
	hora del sistema, como cualquier Datetime de Frappe.
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.

		Ejecuta:
		1. Validar farmer y vet requeridos
		2. Validar animal o animal_name
		3. Validar formato de hora y duración
		4. Validar síntomas
		5. Validar la transición de status
		6. Bloquear si el slot se solapa con otro appointment activo del vet
		7. Normalizar campos derivados
		"""
		self._validate_parties()
		self._validate_animal_identity()
		self._validate_schedule()
		self._validate_symptoms()
		self._validate_text_lengths()
		self._validate_rating()
		self._validate_status_transition()
		self._validate_no_overlap()
		normalize_appointment(self)

	# ===== VALIDATION METHODS =====

	def _validate_parties(self) -> None:
		"""Valida que farmer y vet estén presentes."""
		if not self.farmer:
			frappe.throw(_("Farmer is required"))
		if not self.vet:
			frappe.throw(_("Vet is required"))

	def _validate_animal_identity(self) -> None:
		if not self.animal and not self.animal_name:
			frappe.throw(_("Either an animal or an animal name is required"), MissingRequiredIdentity)

	def _validate_schedule(self) -> None:
		"""Valida scheduled_date, scheduled_time (HH:MM) y duration (15-240)."""
		if not self.scheduled_date:
			frappe.throw(_("Scheduled date is required"))

		parse_time(self.scheduled_time)
		self.duration = validate_duration(self.duration)

	def _validate_symptoms(self) -> None:
		if not (self.symptoms or "").strip():
			frappe.throw(_("Symptoms description is required"))
		if len(self.symptoms) > MAX_SYMPTOMS_LENGTH:
			frappe.throw(
				_("Symptoms description cannot exceed {0} characters").format(MAX_SYMPTOMS_LENGTH)
			)

	def _validate_text_lengths(self) -> None:
		for fieldname, limit in TEXT_LIMITS.items():
			value = self.get(fieldname)
			if value and len(value) > limit:
				frappe.throw(
					_("{0} cannot exceed {1} characters").format(self.meta.get_label(fieldname), limit)
				)

	def _validate_rating(self) -> None:
		if self.rating and not 1 <= int(self.rating) <= 5:
			frappe.throw(_("Rating must be between 1 and 5"))

	def _validate_status_transition(self) -> None:
		"""
		Un appointment nuevo siempre empieza en pending.
		Si ya existe, el cambio de status debe ser una transición válida.
		"""
		if self.is_new():
			if self.status and self.status != "pending":
				frappe.throw(_("New appointments must start as pending"), InvalidTransition)
			self.status = "pending"
			return

		doc_before_save = self.get_doc_before_save()
		if doc_before_save and doc_before_save.status != self.status:
			validate_transition(doc_before_save.status, self.status)

	def _validate_no_overlap(self) -> None:
		"""
		Bloquea si otro appointment activo del mismo vet ocupa el intervalo.

		Solo se revisa si el appointment es nuevo o cambió su horario.
		"""
		if self.status not in ACTIVE_STATUSES:
			return

		if not self.is_new() and not any(self.has_value_changed(f) for f in SCHEDULE_FIELDS):
			return

		ensure_no_conflict(
			self.vet,
			self.scheduled_date,
			self.scheduled_time,
			self.duration,
			exclude_appointment=self.name
		)
