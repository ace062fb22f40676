"""
validation.py — Registration field sanitization and token checks
=================================================================
Every validator returns the sanitized value or raises InvalidInput
with a message safe to show to the participant.
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from .errors import InvalidInput

FIELD_LIMITS = {
    "name": (2, 100),
    "email": (5, 255),
    "phone": (10, 50),
}

# Control characters except tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

# Letters (any script), spaces, hyphens, apostrophes, dots
_NAME_RE = re.compile(r"^(?:[^\W\d_]|[\s\-'.])+$")

# Address syntax is checked by email-validator through pydantic's EmailStr
_EMAIL = TypeAdapter(EmailStr)

_PHONE_RE = re.compile(r"^[\d\s\-+()]+$")

_UUID4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def sanitize_string(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return _CONTROL_CHARS.sub("", value).strip()


def validate_name(name: object) -> str:
    if not name or not isinstance(name, str):
        raise InvalidInput("Name is required")
    sanitized = sanitize_string(name)
    low, high = FIELD_LIMITS["name"]
    if len(sanitized) < low:
        raise InvalidInput(f"Name must be at least {low} characters")
    if len(sanitized) > high:
        raise InvalidInput(f"Name must not exceed {high} characters")
    if not _NAME_RE.fullmatch(sanitized):
        raise InvalidInput("Name contains invalid characters")
    return sanitized


def validate_email(email: object) -> str:
    if not email or not isinstance(email, str):
        raise InvalidInput("Email is required")
    sanitized = sanitize_string(email.lower())
    low, high = FIELD_LIMITS["email"]
    if len(sanitized) < low:
        raise InvalidInput(f"Email must be at least {low} characters")
    if len(sanitized) > high:
        raise InvalidInput(f"Email must not exceed {high} characters")
    try:
        normalized = _EMAIL.validate_python(sanitized)
    except ValidationError:
        raise InvalidInput("Invalid email format")
    if normalized != sanitized:
        # "Name <addr>" form or a rewritten domain
        raise InvalidInput("Invalid email format")
    return sanitized


def validate_phone(phone: object) -> str:
    if not phone or not isinstance(phone, str):
        raise InvalidInput("Phone is required")
    sanitized = sanitize_string(phone)
    digits = re.sub(r"\D", "", sanitized)
    if len(digits) < 10:
        raise InvalidInput("Phone number must contain at least 10 digits")
    if len(digits) > 15:
        raise InvalidInput("Phone number must not exceed 15 digits")
    _, high = FIELD_LIMITS["phone"]
    if len(sanitized) > high:
        raise InvalidInput(f"Phone number must not exceed {high} characters")
    if not _PHONE_RE.fullmatch(sanitized):
        raise InvalidInput("Phone number contains invalid characters")
    return sanitized


def is_valid_participant_token(value: Optional[str]) -> bool:
    """True for a UUID v4 string (the only shape registration ever issues)."""
    if not value or not isinstance(value, str):
        return False
    return _UUID4_RE.fullmatch(value) is not None
