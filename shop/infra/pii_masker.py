"""
PII (Personally Identifiable Information) masking utilities.
"""
import re
from typing import Any


PII_FIELDS = {"email", "phone", "name", "address", "customer_name"}


def mask_email(email: str) -> str:
    """Mask email address."""
    if "@" not in email:
        return email
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        masked = "**"
    else:
        masked = local[:2] + "*" * (len(local) - 2)
    return f"{masked}@{domain}"


def mask_phone(phone: str) -> str:
    """Mask phone number."""
    if len(phone) <= 4:
        return "*" * len(phone)
    return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]


def mask_name(name: str) -> str:
    if len(name) <= 2:
        return "**"
    return name[0] + "*" * (len(name) - 2) + name[-1]


def mask_value(key: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    if "@" in value:
        return mask_email(value)
    if re.match(r"^[\d\s\+\-\(\)]+$", value):
        return mask_phone(value)
    if key in ("name", "customer_name"):
        return mask_name(value)
    return "*" * min(len(value), 8)


def _mask_nested(value: Any) -> Any:
    if isinstance(value, dict):
        return mask_pii_in_dict(value)
    if isinstance(value, list):
        return [_mask_nested(item) for item in value]
    return value


def mask_pii_in_dict(data: dict) -> dict:
    """Mask PII in dictionary recursively."""
    masked = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            masked[key] = _mask_nested(value)
        elif key.lower() in PII_FIELDS:
            masked[key] = mask_value(key.lower(), value)
        else:
            masked[key] = value
    return masked
