# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Vet DocType

Perfil del veterinario: tarifas, zona horaria y horario semanal
(tabla hija Vet Working Hours, una fila por día de semana).
"""

import frappe
from frappe import _
from frappe.model.document import Document
import pytz
from typing import Dict

from vet_scheduling.vet_scheduling.scheduling.availability import WEEKDAYS
from vet_scheduling.vet_scheduling.scheduling.exceptions import InvalidTimeFormat
from vet_scheduling.vet_scheduling.scheduling.timeslots import parse_time

# Lunes a viernes 9-17, fines de semana cerrado
DEFAULT_WORKING_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")
DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "17:00"


class Vet(Document):
	"""
	Vet with weekly working hours.

	Validations:
	- vet_name required
	- timezone must be a valid IANA name (if present)
	- fees must be >= 0
	- working_hours: one row per weekday, HH:MM times, start < end
	"""

	def validate(self) -> None:
		"""
		Validación antes de guardar.
		"""
		self._validate_vet_name()
		self._validate_timezone()
		self._validate_fees()
		self._set_default_working_hours()
		self._validate_working_hours()

	def _validate_vet_name(self) -> None:
		"""Valida que vet_name esté presente."""
		self.vet_name = (self.vet_name or "").strip()
		if not self.vet_name:
			frappe.throw(_("Vet Name is required"))

	def _validate_timezone(self) -> None:
		if not self.timezone:
			return

		if self.timezone not in pytz.all_timezones_set:
			frappe.throw(_("Invalid timezone: {0}").format(self.timezone))

	def _validate_fees(self) -> None:
		for fieldname in ("consultation_fee", "travel_fee"):
			if (self.get(fieldname) or 0) < 0:
				frappe.throw(_("{0} cannot be negative").format(self.meta.get_label(fieldname)))

	def _set_default_working_hours(self) -> None:
		"""Si no hay horario, crea la semana por defecto (lunes a viernes disponible)."""
		if self.working_hours:
			return

		for weekday in WEEKDAYS:
			self.append("working_hours", {
				"weekday": weekday,
				"start_time": DEFAULT_START_TIME,
				"end_time": DEFAULT_END_TIME,
				"available": 1 if weekday in DEFAULT_WORKING_DAYS else 0
			})

	def _validate_working_hours(self) -> None:
		"""
		Valida cada fila del horario semanal.

		- weekday válido y no repetido
		- start_time / end_time en formato HH:MM
		- start_time < end_time en los días disponibles
		"""
		seen: Dict[str, int] = {}

		for idx, row in enumerate(self.working_hours, 1):
			weekday = (row.weekday or "").lower()
			if weekday not in WEEKDAYS:
				frappe.throw(_("Row {0}: invalid weekday '{1}'").format(idx, row.weekday))

			if weekday in seen:
				frappe.throw(
					_("Row {0}: {1} is already defined in row {2}").format(idx, weekday, seen[weekday])
				)
			seen[weekday] = idx
			row.weekday = weekday

			start = self._parse_row_time(idx, weekday, row.start_time or DEFAULT_START_TIME)
			end = self._parse_row_time(idx, weekday, row.end_time or DEFAULT_END_TIME)

			if row.available and start >= end:
				frappe.throw(
					_("Row {0} ({1}): Start Time ({2}) must be before End Time ({3})").format(
						idx, weekday, start.strftime("%H:%M"), end.strftime("%H:%M")
					)
				)

	def _parse_row_time(self, idx: int, weekday: str, value: str):
		try:
			return parse_time(value)
		except InvalidTimeFormat:
			frappe.throw(_("Row {0} ({1}): time '{2}' must be in HH:MM format").format(idx, weekday, value))
