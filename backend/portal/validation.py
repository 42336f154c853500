from __future__ import annotations

import datetime
from typing import Any, Mapping, Optional

from django.utils.dateparse import parse_date

from .exceptions import ValidationError


def _label(field: str) -> str:
    return field.replace("_", " ")


def clean_text(value: Any, field: str) -> str:
    """Stripped text, ``""`` for None. Anything that is not a string is rejected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{_label(field)} must be text", field=field)
    return value.strip()


def require_text(data: Mapping[str, Any], field: str) -> str:
    text = clean_text(data.get(field), field)
    if not text:
        raise ValidationError(f"{_label(field)} is required", field=field)
    return text


def optional_text(data: Mapping[str, Any], field: str) -> str:
    return clean_text(data.get(field), field)


def coerce_int(value: Any, field: str) -> int:
    # bool is an int subclass; "True" is never a head count or a star value
    if isinstance(value, bool):
        raise ValidationError(f"{_label(field)} must be a whole number", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{_label(field)} must be a whole number", field=field)


def require_int(data: Mapping[str, Any], field: str) -> int:
    value = data.get(field)
    if value is None or value == "":
        raise ValidationError(f"{_label(field)} is required", field=field)
    return coerce_int(value, field)


def require_date(data: Mapping[str, Any], field: str) -> datetime.date:
    value = data.get(field)
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(f"{_label(field)} is required", field=field)
    try:
        parsed = parse_date(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{_label(field)} must be a date (YYYY-MM-DD)", field=field)
    return parsed


def require_choice(value: Any, choices, field: str) -> str:
    allowed = [key for key, _ in choices]
    if value not in allowed:
        raise ValidationError(
            f"{_label(field)} must be one of: {', '.join(allowed)}",
            field=field,
        )
    return value


def optional_id(value: Any, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return coerce_int(value, field)
