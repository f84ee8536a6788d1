from __future__ import annotations

import math

from timberdesk.domain.errors import ValidationError


def parse_amount(value: object, label: str) -> float:
    """Numbers typed into forms arrive as text; reject anything that is not a finite number."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number.")
    try:
        number = float(str(value).strip().replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.") from None
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a number.")
    return number


def clean_text(value: object) -> str:
    return "" if value is None else str(value).strip()
