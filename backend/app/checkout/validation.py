"""Field-level validation of the checkout delivery form."""
from __future__ import annotations

import re
from typing import Dict

from .models import DeliveryDetails

_POSTAL_CODE_RE = re.compile(r"[0-9]{6}")
_PHONE_SEPARATORS_RE = re.compile(r"[ \-()]")
_PHONE_DIGITS_RE = re.compile(r"\+?[0-9]{10,15}")

_REQUIRED_FIELDS = {
    "full_name": "Full name is required.",
    "phone": "Phone number is required.",
    "street_address": "Street address is required.",
    "city": "City is required.",
    "postal_code": "Postal code is required.",
}


def _is_valid_phone(value: str) -> bool:
    """Accept 10 to 15 ASCII digits, optionally led by ``+`` and broken up by
    spaces, dashes or parentheses."""

    return _PHONE_DIGITS_RE.fullmatch(_PHONE_SEPARATORS_RE.sub("", value)) is not None


def validate_delivery(details: DeliveryDetails, *, terms_accepted: bool) -> Dict[str, str]:
    """Return a mapping of field name to error message; empty when valid."""

    errors: Dict[str, str] = {}
    for field, message in _REQUIRED_FIELDS.items():
        if not getattr(details, field):
            errors[field] = message

    if "phone" not in errors and not _is_valid_phone(details.phone or ""):
        errors["phone"] = "Enter a valid phone number."

    if "postal_code" not in errors and not _POSTAL_CODE_RE.fullmatch(details.postal_code or ""):
        errors["postal_code"] = "Postal code must be exactly 6 digits."

    if not terms_accepted:
        errors["terms"] = "Please accept the rental terms to continue."

    return errors
