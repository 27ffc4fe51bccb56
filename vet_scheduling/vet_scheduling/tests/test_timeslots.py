"""
Tests for scheduling/timeslots.py

Tests time parsing, start/end computation and slot enumeration.
"""

import unittest
from datetime import date, datetime, time

from vet_scheduling.vet_scheduling.scheduling.exceptions import InvalidTimeFormat
from vet_scheduling.vet_scheduling.scheduling.timeslots import (
	compute_end,
	compute_start,
	enumerate_slots,
	format_time,
	is_valid_time,
	parse_time,
	to_date,
)


class TestTimeParsing(unittest.TestCase):
	"""Tests for HH:MM parsing."""

	def test_valid_times(self):
		for value in ("00:00", "09:30", "9:30", "23:59", "12:05"):
			self.assertTrue(is_valid_time(value), value)

	def test_invalid_times(self):
		for value in ("24:00", "12:60", "1230", "12:3", "ab:cd", "", None, " 09:00"):
			self.assertFalse(is_valid_time(value), value)

	def test_parse_time(self):
		self.assertEqual(parse_time("9:05"), time(9, 5))
		self.assertEqual(parse_time("23:59"), time(23, 59))

	def test_parse_time_rejects_malformed(self):
		with self.assertRaises(InvalidTimeFormat):
			parse_time("25:00")

	def test_format_time_pads(self):
		self.assertEqual(format_time(time(9, 5)), "09:05")
		self.assertEqual(format_time(datetime(2024, 1, 15, 14, 0)), "14:00")


class TestComputeStartEnd(unittest.TestCase):
	"""Tests for compute_start / compute_end."""

	def test_compute_start_combines_date_and_time(self):
		start = compute_start(date(2024, 1, 15), "14:30")
		self.assertEqual(start, datetime(2024, 1, 15, 14, 30))
		self.assertEqual(start.second, 0)
		self.assertEqual(start.microsecond, 0)
		self.assertIsNone(start.tzinfo)

	def test_compute_start_uses_date_part_of_datetime(self):
		start = compute_start(datetime(2024, 1, 15, 23, 59, 59), "08:00")
		self.assertEqual(start, datetime(2024, 1, 15, 8, 0))

	def test_compute_start_accepts_iso_string(self):
		self.assertEqual(compute_start("2024-01-15", "08:00"), datetime(2024, 1, 15, 8, 0))

	def test_compute_start_invalid_time(self):
		with self.assertRaises(InvalidTimeFormat):
			compute_start(date(2024, 1, 15), "8am")

	def test_end_of_one_slot_is_start_of_next(self):
		day = date(2024, 1, 15)
		self.assertEqual(compute_end(compute_start(day, "14:00"), 30), compute_start(day, "14:30"))

	def test_compute_end_crosses_midnight(self):
		end = compute_end(compute_start(date(2024, 1, 15), "23:30"), 60)
		self.assertEqual(end, datetime(2024, 1, 16, 0, 30))

	def test_to_date(self):
		self.assertEqual(to_date(datetime(2024, 1, 15, 10, 0)), date(2024, 1, 15))
		self.assertEqual(to_date(date(2024, 1, 15)), date(2024, 1, 15))
		self.assertEqual(to_date("2024-01-15"), date(2024, 1, 15))


class TestEnumerateSlots(unittest.TestCase):
	"""Tests for enumerate_slots."""

	def test_default_working_day(self):
		slots = enumerate_slots(9, 17)
		self.assertEqual(len(slots), 16)
		self.assertEqual(slots[0], "09:00")
		self.assertEqual(slots[-1], "16:30")

	def test_end_hour_is_exclusive(self):
		self.assertNotIn("17:00", enumerate_slots(9, 17))

	def test_custom_step(self):
		self.assertEqual(enumerate_slots(9, 10, 15), ["09:00", "09:15", "09:30", "09:45"])

	def test_empty_window(self):
		self.assertEqual(enumerate_slots(12, 12), [])
		self.assertEqual(enumerate_slots(17, 9), [])

	def test_non_positive_step(self):
		with self.assertRaises(ValueError):
			enumerate_slots(9, 17, 0)
		with self.assertRaises(ValueError):
			enumerate_slots(9, 17, -30)


def run_tests():
	"""Run all tests in this module."""
	unittest.main()
