"""
Security Utilities for the Appointment API

Provides rate limiting and resolution of the authenticated party
(Vet or Farmer) behind the current Frappe session.
"""

import frappe
from frappe import _
from frappe.utils import cint
from typing import Any, Tuple


# ===================
# Rate Limiting
# ===================

def check_rate_limit(action: str, limit: int = 10, seconds: int = 60) -> None:
    """
    Check rate limit for an action by IP address.

    Uses Frappe's cache (Redis) to track request counts per IP.

    Args:
        action: Identifier for the action being rate limited
        limit: Maximum number of requests allowed
        seconds: Time window in seconds

    Raises:
        frappe.TooManyRequestsError: If rate limit exceeded
    """
    ip = get_client_ip()
    cache_key = f"rate_limit:vet_scheduling:{action}:{ip}"

    current = cint(frappe.cache.get_value(cache_key) or 0)

    if current >= limit:
        frappe.log_error(
            title=_("Rate Limit Exceeded"),
            message=f"IP: {ip}, Action: {action}, Limit: {limit}/{seconds}s"
        )
        frappe.throw(
            _("Too many requests. Please wait a moment and try again."),
            frappe.TooManyRequestsError
        )

    frappe.cache.set_value(cache_key, current + 1, expires_in_sec=seconds)


def get_client_ip() -> str:
    """
    Get the real client IP address, handling proxies.

    Returns:
        str: Client IP address, or 'unknown' outside of a web request
    """
    request = getattr(frappe, "request", None)
    if not request:
        return 'unknown'

    # X-Forwarded-For can contain multiple IPs, take the first one
    forwarded_for = request.headers.get('X-Forwarded-For', '')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()

    real_ip = request.headers.get('X-Real-IP', '')
    if real_ip:
        return real_ip.strip()

    return request.remote_addr or 'unknown'


# ===================
# Party Resolution
# ===================

def get_current_actor() -> Tuple[str, str]:
    """
    Resolve the session user to the Vet or Farmer linked to it.

    Returns:
        tuple: ("vet", vet_name) or ("farmer", farmer_name)

    Raises:
        frappe.AuthenticationError: Guest session
        frappe.PermissionError: the user is neither a vet nor a farmer
    """
    user = frappe.session.user
    if not user or user == "Guest":
        frappe.throw(_("Authentication required. Please login first."), frappe.AuthenticationError)

    vet = frappe.db.get_value("Vet", {"user": user}, "name")
    if vet:
        return "vet", vet

    farmer = frappe.db.get_value("Farmer", {"user": user}, "name")
    if farmer:
        return "farmer", farmer

    frappe.throw(_("Only farmers and vets can use this service"), frappe.PermissionError)


def require_vet(actor_type: str) -> None:
    """Raises frappe.PermissionError unless the actor is a vet."""
    if actor_type != "vet":
        frappe.throw(_("Only vets can perform this action"), frappe.PermissionError)


def is_party(appointment: Any, actor_type: str, actor_id: str) -> bool:
    """True if the actor is the appointment's farmer or vet."""
    if actor_type == "farmer":
        return appointment.get("farmer") == actor_id
    if actor_type == "vet":
        return appointment.get("vet") == actor_id
    return False


def require_party(appointment: Any, actor_type: str, actor_id: str) -> None:
    """
    Raises:
        frappe.PermissionError: the actor is not a party of the appointment
    """
    if not is_party(appointment, actor_type, actor_id):
        frappe.throw(_("Access denied"), frappe.PermissionError)
