"""
Shared utilities for the Vet Scheduling API.

Rate limiting and party resolution come from api.security; input
validators live in validators.py.
"""

from vet_scheduling.api.security import (
    # Rate limiting
    check_rate_limit,
    get_client_ip,
    # Party resolution
    get_current_actor,
    is_party,
    require_party,
    require_vet,
)

from .validators import (
    sanitize_string,
    validate_date_string,
    validate_docname,
    validate_time_string,
)

__all__ = [
    "check_rate_limit",
    "get_client_ip",
    "get_current_actor",
    "is_party",
    "require_party",
    "require_vet",
    "sanitize_string",
    "validate_date_string",
    "validate_docname",
    "validate_time_string",
]
