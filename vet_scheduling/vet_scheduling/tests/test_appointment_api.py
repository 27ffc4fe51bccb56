"""
Tests for api/appointment_api.py

Tests whitelisted API endpoints with the Frappe data layer mocked out.
"""

import unittest
from datetime import date, datetime
from unittest.mock import patch

import frappe

from vet_scheduling.api.appointment_api import (
	cancel_appointment,
	create_appointment,
	delete_appointment,
	get_appointment_detail,
	get_available_slots,
	get_my_appointments,
	get_vet_schedule,
	reschedule_appointment,
	update_appointment_status,
	validate_appointment,
)
from vet_scheduling.vet_scheduling.scheduling.exceptions import (
	AppointmentValidationError,
	InvalidDuration,
	InvalidTimeFormat,
	InvalidTransition,
	NotCancellable,
	NotReschedulable,
)

API = "vet_scheduling.api.appointment_api"

# Wall clock of a vet in America/Bogota; the server runs on UTC
NOW = datetime(2024, 1, 15, 8, 0)
SYSTEM_NOW = datetime(2024, 1, 15, 13, 0)


def fake_throw(msg, exc=frappe.ValidationError, *args, **kwargs):
	raise exc(msg)


class FakeDoc(frappe._dict):
	"""Minimal Document stand-in: records insert/save calls."""

	def insert(self, **kwargs):
		self["inserted"] = True
		if not self.get("name"):
			self["name"] = "APT-00042"
		return self

	def save(self, **kwargs):
		self["saved"] = True
		return self

	def set(self, key, value):
		self[key] = value

	def append(self, key, row):
		self.setdefault(key, []).append(row)

	def as_dict(self):
		return dict(self)


def make_vet(name="VET-00001", is_active=1, is_verified=1):
	return frappe._dict(
		name=name,
		vet_name="Dr. Ana",
		is_active=is_active,
		is_verified=is_verified,
		timezone="America/Bogota",
		consultation_fee=50,
		travel_fee=20,
		working_hours=[
			frappe._dict(weekday="monday", start_time="09:00", end_time="17:00", available=1),
		]
	)


def make_appointment(name="APT-00001", status="accepted", scheduled_time="11:00", **kwargs):
	values = {
		"name": name,
		"farmer": "FRM-00001",
		"vet": "VET-00001",
		"animal_name": "Lola",
		"status": status,
		"scheduled_date": date(2024, 1, 15),
		"scheduled_time": scheduled_time,
		"duration": 30,
		"priority": "normal",
	}
	values.update(kwargs)
	return FakeDoc(values)


class APITestCase(unittest.TestCase):
	"""Patches the Frappe data layer used by the endpoints."""

	actor = ("farmer", "FRM-00001")

	def setUp(self):
		self.docs = {}
		self.vets = {"VET-00001": make_vet()}

		def get_doc(*args):
			if isinstance(args[0], dict):
				return FakeDoc(args[0])
			return self.docs[args[1]]

		patchers = {
			"throw": patch("frappe.throw", side_effect=fake_throw),
			"log_error": patch("frappe.log_error"),
			"logger": patch("frappe.logger"),
			"db": patch("frappe.db"),
			"get_doc": patch("frappe.get_doc", side_effect=get_doc),
			"get_cached_doc": patch("frappe.get_cached_doc", side_effect=lambda doctype, name: self.vets[name]),
			"get_all": patch("frappe.get_all", return_value=[]),
			"delete_doc": patch("frappe.delete_doc"),
			"rate_limit": patch(f"{API}.check_rate_limit"),
			"actor": patch(f"{API}.get_current_actor", side_effect=lambda: self.actor),
			"lock": patch(f"{API}._booking_lock"),
			"vet_now": patch(f"{API}.get_vet_now", return_value=NOW),
			"system_now": patch(f"{API}.now_datetime", return_value=SYSTEM_NOW),
		}
		self.mocks = {key: p.start() for key, p in patchers.items()}
		for p in patchers.values():
			self.addCleanup(p.stop)

		self.mock_db = self.mocks["db"]
		self.mock_db.exists.return_value = True


class TestAvailabilityEndpoints(APITestCase):
	"""Tests for get_available_slots / validate_appointment."""

	def test_get_available_slots(self):
		result = get_available_slots("VET-00001", "2024-01-15")

		self.assertEqual(result["vet"], "VET-00001")
		self.assertEqual(result["duration"], 30)
		self.assertEqual(len(result["available_slots"]), 16)
		self.assertEqual(result["available_slots"][0], "09:00")

	def test_get_available_slots_closed_day(self):
		result = get_available_slots("VET-00001", "2024-01-14")
		self.assertEqual(result["available_slots"], [])

	def test_get_available_slots_excludes_booked(self):
		self.mocks["get_all"].return_value = [
			frappe._dict(name="APT-00001", status="pending", scheduled_date=date(2024, 1, 15),
				scheduled_time="09:00", duration=60)
		]
		result = get_available_slots("VET-00001", "2024-01-15")
		self.assertEqual(result["available_slots"][0], "10:00")

	def test_get_available_slots_inactive_vet(self):
		self.vets["VET-00001"] = make_vet(is_active=0)
		with self.assertRaises(frappe.ValidationError):
			get_available_slots("VET-00001", "2024-01-15")

	def test_get_available_slots_unverified_vet(self):
		self.vets["VET-00001"] = make_vet(is_verified=0)
		with self.assertRaises(frappe.ValidationError):
			get_available_slots("VET-00001", "2024-01-15")

	def test_get_available_slots_unknown_vet(self):
		self.mock_db.exists.return_value = False
		with self.assertRaises(frappe.DoesNotExistError):
			get_available_slots("VET-99999", "2024-01-15")

	def test_get_available_slots_invalid_date(self):
		with self.assertRaises(frappe.ValidationError):
			get_available_slots("VET-00001", "15/01/2024")

	def test_get_available_slots_invalid_duration(self):
		with self.assertRaises(frappe.ValidationError):
			get_available_slots("VET-00001", "2024-01-15", duration=500)

	def test_validate_appointment_free_slot(self):
		result = validate_appointment("VET-00001", "2024-01-15", "10:00", 30)

		self.assertTrue(result["valid"])
		self.assertEqual(result["errors"], [])
		self.assertEqual(result["warnings"], [])
		self.assertFalse(result["overlap_info"]["has_conflict"])

	def test_validate_appointment_conflict(self):
		self.mocks["get_all"].return_value = [
			frappe._dict(name="APT-00001", status="accepted", scheduled_date=date(2024, 1, 15),
				scheduled_time="10:00", duration=30)
		]

		result = validate_appointment("VET-00001", "2024-01-15", "10:00", 30)

		self.assertFalse(result["valid"])
		self.assertEqual(len(result["errors"]), 1)
		self.assertEqual(result["overlap_info"]["conflicting_appointment"], "APT-00001")

	def test_validate_appointment_outside_hours_warns(self):
		result = validate_appointment("VET-00001", "2024-01-15", "18:00", 30)

		self.assertTrue(result["valid"])
		self.assertEqual(len(result["warnings"]), 1)

	def test_validate_appointment_bad_time(self):
		result = validate_appointment("VET-00001", "2024-01-15", "10h", 30)

		self.assertFalse(result["valid"])
		self.assertGreater(len(result["errors"]), 0)

	def test_validate_appointment_unknown_vet(self):
		self.mock_db.exists.return_value = False

		result = validate_appointment("VET-99999", "2024-01-15", "10:00", 30)

		self.assertFalse(result["valid"])


class TestCreateAppointment(APITestCase):
	"""Tests for create_appointment."""

	farmer_payload = {
		"vet": "VET-00001",
		"animal": "ANIMAL-001",
		"scheduled_date": "2024-01-15",
		"scheduled_time": "10:00",
		"symptoms": "Fever",
		"location_type": "farm",
	}

	def test_farmer_booking(self):
		result = create_appointment(**self.farmer_payload)

		self.assertTrue(result["inserted"])
		self.assertEqual(result["farmer"], "FRM-00001")
		self.assertEqual(result["vet"], "VET-00001")
		self.assertEqual(result["status"], "pending")
		self.assertEqual(result["consultation_fee"], 50)
		self.assertEqual(result["travel_fee"], 20)
		self.mocks["lock"].assert_called_once_with("VET-00001")
		self.mock_db.commit.assert_called_once()

	def test_vet_booking_is_free(self):
		self.actor = ("vet", "VET-00001")

		result = create_appointment(
			farmer="FRM-00001",
			animal_name="Lola",
			date="2024-01-15",
			time="11:00",
			reason="Vaccination"
		)

		self.assertEqual(result["vet"], "VET-00001")
		self.assertEqual(result["symptoms"], "Vaccination")
		self.assertEqual(result["consultation_fee"], 0)
		self.assertEqual(result["travel_fee"], 0)

	def test_unknown_farmer(self):
		self.actor = ("vet", "VET-00001")
		self.mock_db.exists.side_effect = lambda doctype, name=None: doctype != "Farmer"

		with self.assertRaises(frappe.DoesNotExistError):
			create_appointment(
				farmer="FRM-99999",
				animal_name="Lola",
				date="2024-01-15",
				time="11:00",
				reason="Vaccination"
			)

	def test_invalid_time_is_rejected_before_insert(self):
		with self.assertRaises(InvalidTimeFormat):
			create_appointment(**dict(self.farmer_payload, scheduled_time="25:00"))

		self.mocks["lock"].assert_not_called()
		self.mock_db.commit.assert_not_called()

	def test_unverified_vet_cannot_be_booked(self):
		self.vets["VET-00001"] = make_vet(is_verified=0)

		with self.assertRaises(frappe.ValidationError):
			create_appointment(**self.farmer_payload)

		self.mocks["lock"].assert_not_called()

	def test_duration_out_of_range_is_rejected(self):
		for duration in (0, 10, 241):
			with self.assertRaises(InvalidDuration):
				create_appointment(**dict(self.farmer_payload, duration=duration))

		self.mocks["lock"].assert_not_called()

	def test_duration_bounds_are_accepted(self):
		for duration in (15, 240):
			result = create_appointment(**dict(self.farmer_payload, duration=duration))
			self.assertEqual(result["duration"], duration)

	def test_past_time_is_rejected(self):
		# 07:00 ya pasó en la hora local del vet (08:00)
		with self.assertRaises(AppointmentValidationError):
			create_appointment(**dict(self.farmer_payload, scheduled_time="07:00"))

		self.mocks["lock"].assert_not_called()

	def test_unexpected_error_is_logged(self):
		self.mocks["get_doc"].side_effect = RuntimeError("boom")

		with self.assertRaises(frappe.ValidationError):
			create_appointment(**self.farmer_payload)

		self.mocks["log_error"].assert_called_once()


class TestLifecycleEndpoints(APITestCase):
	"""Tests for status updates, cancel, reschedule and delete."""

	actor = ("vet", "VET-00001")

	def test_vet_completes_appointment(self):
		self.docs["APT-00001"] = make_appointment(status="accepted")
		self.mock_db.get_value.return_value = 4

		result = update_appointment_status(
			"APT-00001",
			status="completed",
			diagnosis="Mastitis",
			prescription='[{"medication_name": "Oxytetracycline", "dosage": "10ml"}]'
		)

		self.assertEqual(result["status"], "completed")
		self.assertEqual(result["completed_at"], SYSTEM_NOW)
		self.assertEqual(result["diagnosis"], "Mastitis")
		self.assertEqual(result["prescription"][0]["medication_name"], "Oxytetracycline")
		self.mock_db.set_value.assert_called_once_with(
			"Vet", "VET-00001", "completed_appointments", 5, update_modified=False
		)

	def test_vet_cancel_through_status_update(self):
		self.docs["APT-00001"] = make_appointment(status="in-progress")

		result = update_appointment_status("APT-00001", status="cancelled")

		self.assertEqual(result["status"], "cancelled")
		self.assertEqual(result["cancelled_by"], "vet")
		self.assertEqual(self.mock_db.set_value.call_args[0][2], "cancelled_appointments")

	def test_clinical_update_without_status_change(self):
		self.docs["APT-00001"] = make_appointment(status="accepted")

		result = update_appointment_status("APT-00001", vet_notes="Check again next week")

		self.assertEqual(result["status"], "accepted")
		self.assertEqual(result["vet_notes"], "Check again next week")
		self.mock_db.set_value.assert_not_called()

	def test_invalid_transition(self):
		self.docs["APT-00001"] = make_appointment(status="completed")

		with self.assertRaises(InvalidTransition):
			update_appointment_status("APT-00001", status="accepted")

	def test_farmer_cannot_update_status(self):
		self.actor = ("farmer", "FRM-00001")
		self.docs["APT-00001"] = make_appointment()

		with self.assertRaises(frappe.PermissionError):
			update_appointment_status("APT-00001", status="completed")

	def test_other_vet_cannot_update_status(self):
		self.actor = ("vet", "VET-00002")
		self.docs["APT-00001"] = make_appointment()

		with self.assertRaises(frappe.PermissionError):
			update_appointment_status("APT-00001", status="completed")

	def test_farmer_cancels(self):
		self.actor = ("farmer", "FRM-00001")
		self.docs["APT-00001"] = make_appointment(status="pending", scheduled_time="11:00")

		result = cancel_appointment("APT-00001", reason="Animal recovered")

		self.assertTrue(result["success"])
		appointment = result["appointment"]
		self.assertEqual(appointment["status"], "cancelled")
		self.assertEqual(appointment["cancelled_by"], "farmer")
		self.assertEqual(appointment["cancellation_reason"], "Animal recovered")
		self.assertEqual(appointment["cancelled_at"], SYSTEM_NOW)
		self.mock_db.set_value.assert_not_called()

	def test_vet_cancel_increments_counter(self):
		self.docs["APT-00001"] = make_appointment(status="accepted", scheduled_time="11:00")
		self.mock_db.get_value.return_value = 0

		cancel_appointment("APT-00001")

		self.mock_db.set_value.assert_called_once_with(
			"Vet", "VET-00001", "cancelled_appointments", 1, update_modified=False
		)

	def test_cancel_window_uses_vet_clock(self):
		"""11:00 está a 3h en la hora del vet aunque en UTC ya pasó."""
		self.actor = ("farmer", "FRM-00001")
		self.docs["APT-00001"] = make_appointment(status="accepted", scheduled_time="11:00")

		result = cancel_appointment("APT-00001")

		self.assertEqual(result["appointment"]["status"], "cancelled")
		self.assertEqual(result["appointment"]["cancelled_at"], SYSTEM_NOW)
		self.assertNotEqual(result["appointment"]["cancelled_at"], NOW)

	def test_cancel_too_close(self):
		self.docs["APT-00001"] = make_appointment(status="accepted", scheduled_time="09:30")

		with self.assertRaises(NotCancellable):
			cancel_appointment("APT-00001")

		self.assertEqual(self.docs["APT-00001"].status, "accepted")

	def test_cancel_unknown_appointment(self):
		self.mock_db.exists.return_value = False

		with self.assertRaises(frappe.DoesNotExistError):
			cancel_appointment("APT-99999")

	def test_reschedule(self):
		self.actor = ("farmer", "FRM-00001")
		self.docs["APT-00001"] = make_appointment(status="pending", scheduled_time="16:00")

		result = reschedule_appointment("APT-00001", "2024-01-17", "10:00")

		self.assertEqual(result["scheduled_date"], date(2024, 1, 17))
		self.assertEqual(result["scheduled_time"], "10:00")
		self.assertTrue(result["saved"])
		self.mocks["lock"].assert_called_once_with("VET-00001")

	def test_reschedule_to_the_past(self):
		self.docs["APT-00001"] = make_appointment(status="pending", scheduled_time="16:00")

		with self.assertRaises(NotReschedulable):
			reschedule_appointment("APT-00001", "2024-01-14", "10:00")

		self.assertEqual(self.docs["APT-00001"].scheduled_time, "16:00")
		self.assertNotIn("saved", self.docs["APT-00001"])

	def test_reschedule_invalid_time(self):
		self.docs["APT-00001"] = make_appointment(status="pending", scheduled_time="16:00")

		with self.assertRaises(frappe.ValidationError):
			reschedule_appointment("APT-00001", "2024-01-17", "10am")

	def test_delete_by_party(self):
		self.docs["APT-00001"] = make_appointment(status="completed")

		result = delete_appointment("APT-00001")

		self.assertTrue(result["success"])
		self.mocks["delete_doc"].assert_called_once_with("Appointment", "APT-00001", ignore_permissions=True)

	def test_delete_by_stranger(self):
		self.actor = ("farmer", "FRM-00002")
		self.docs["APT-00001"] = make_appointment()

		with self.assertRaises(frappe.PermissionError):
			delete_appointment("APT-00001")

		self.mocks["delete_doc"].assert_not_called()


class TestQueryEndpoints(APITestCase):
	"""Tests for the list/detail/schedule endpoints."""

	def test_farmer_appointments_paginated(self):
		self.mock_db.count.return_value = 12

		result = get_my_appointments(page=2, limit=5)

		kwargs = self.mocks["get_all"].call_args[1]
		self.assertEqual(kwargs["filters"], {"farmer": "FRM-00001"})
		self.assertEqual(kwargs["order_by"], "creation desc")
		self.assertEqual(kwargs["limit_start"], 5)
		self.assertEqual(kwargs["limit_page_length"], 5)
		self.assertEqual(result["pagination"], {"current": 2, "pages": 3, "total": 12})

	def test_vet_appointments_filtered_by_day(self):
		self.actor = ("vet", "VET-00001")
		self.mock_db.count.return_value = 0

		get_my_appointments(status="accepted", date="2024-01-15")

		kwargs = self.mocks["get_all"].call_args[1]
		self.assertEqual(
			kwargs["filters"],
			{"vet": "VET-00001", "status": "accepted", "scheduled_date": "2024-01-15"}
		)
		self.assertEqual(kwargs["order_by"], "scheduled_date asc, scheduled_time asc")

	def test_invalid_status_filter(self):
		with self.assertRaises(frappe.ValidationError):
			get_my_appointments(status="archived")

	def test_unexpected_error_is_logged(self):
		self.mocks["get_all"].side_effect = RuntimeError("db down")

		with self.assertRaises(frappe.ValidationError):
			get_my_appointments()

		self.mocks["log_error"].assert_called_once()

	def test_detail_for_party(self):
		self.docs["APT-00001"] = make_appointment()
		self.mock_db.get_value.side_effect = lambda doctype, name, field: f"{doctype} {name}"

		result = get_appointment_detail("APT-00001")

		self.assertEqual(result["vet_name"], "Vet VET-00001")
		self.assertEqual(result["farmer_name"], "Farmer FRM-00001")

	def test_detail_for_stranger(self):
		self.actor = ("farmer", "FRM-00002")
		self.docs["APT-00001"] = make_appointment()

		with self.assertRaises(frappe.PermissionError):
			get_appointment_detail("APT-00001")

	def _schedule_rows(self):
		return [
			frappe._dict(name="APT-00002", farmer="FRM-00002", vet="VET-00001", status="completed",
				scheduled_date=date(2024, 1, 15), scheduled_time="14:00", duration=60),
			frappe._dict(name="APT-00001", farmer="FRM-00001", vet="VET-00001", status="accepted",
				scheduled_date=date(2024, 1, 15), scheduled_time="9:30", duration=30),
		]

	def test_vet_sees_own_schedule(self):
		self.actor = ("vet", "VET-00001")
		self.mocks["get_all"].return_value = self._schedule_rows()

		schedule = get_vet_schedule("VET-00001", "2024-01-15")

		self.assertEqual([entry["name"] for entry in schedule], ["APT-00001", "APT-00002"])
		self.assertEqual(schedule[1]["end_time"], "15:00")
		filters = self.mocks["get_all"].call_args[1]["filters"]
		self.assertEqual(filters["status"], ["in", ["pending", "accepted", "in-progress", "completed"]])

	def test_others_see_busy_blocks_only(self):
		self.mocks["get_all"].return_value = self._schedule_rows()

		schedule = get_vet_schedule("VET-00001", "2024-01-15")

		self.assertEqual(
			schedule[0],
			{"scheduled_time": "9:30", "duration": 30, "status": "accepted", "end_time": "10:00"}
		)
		self.assertNotIn("farmer", schedule[1])


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
