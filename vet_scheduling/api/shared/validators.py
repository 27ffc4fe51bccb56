"""
Input validators for the appointment endpoints.

Every whitelisted method cleans its raw arguments here before any
scheduling logic runs. Failures are raised as frappe.ValidationError.
"""

import re
import frappe
from frappe import _
from typing import Optional

from vet_scheduling.vet_scheduling.scheduling.timeslots import is_valid_time

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Control characters except tab, LF and CR
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

# Markup and SQL keywords that never appear in an autonamed docname
SUSPICIOUS_DOCNAME = re.compile(
    r"<script|javascript:|onclick|onerror|(?:SELECT|INSERT|UPDATE|DELETE|DROP|UNION)\s+|--|;",
    re.IGNORECASE,
)

MAX_DOCNAME_LENGTH = 140


def _require(value, field_name: str) -> str:
    if not value:
        frappe.throw(_("{0} is required").format(field_name), frappe.ValidationError)
    return str(value).strip()


def sanitize_string(value: str, max_length: int = 500) -> Optional[str]:
    """
    Strip, truncate to max_length and drop control characters.

    Returns None for empty input so optional fields stay unset.
    """
    if not value:
        return None

    value = str(value).strip()[:max_length]
    return CONTROL_CHARS.sub("", value)


def validate_date_string(date_str: str, field_name: str = "date") -> str:
    """
    Validate a YYYY-MM-DD string.

    Args:
        date_str: raw value from the request
        field_name: label used in the error message

    Returns:
        str: the stripped date string
    """
    date_str = _require(date_str, field_name)

    if not DATE_PATTERN.match(date_str):
        frappe.throw(
            _("Invalid {0} format. Use YYYY-MM-DD").format(field_name), frappe.ValidationError
        )

    return date_str


def validate_time_string(time_str: str, field_name: str = "time") -> str:
    """Validate a 24h HH:MM time string ("9:30" is accepted)."""
    time_str = _require(time_str, field_name)

    if not is_valid_time(time_str):
        frappe.throw(
            _("Invalid {0}. Please enter time in HH:MM format").format(field_name),
            frappe.ValidationError,
        )

    return time_str


def validate_docname(name: str, field_name: str = "name") -> str:
    """
    Validate a Vet, Farmer or Appointment name received from the client.

    Raises:
        frappe.ValidationError: empty, longer than 140 chars or suspicious
    """
    name = _require(name, field_name)

    if len(name) > MAX_DOCNAME_LENGTH:
        frappe.throw(_("{0} is too long").format(field_name), frappe.ValidationError)

    if SUSPICIOUS_DOCNAME.search(name):
        frappe.throw(_("Invalid {0}").format(field_name), frappe.ValidationError)

    return name
