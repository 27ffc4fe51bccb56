# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

import frappe
from frappe import _
from frappe.model.document import Document


class Farmer(Document):
	def validate(self) -> None:
		self.farmer_name = (self.farmer_name or "").strip()
		if not self.farmer_name:
			frappe.throw(_("Farmer Name is required"))
