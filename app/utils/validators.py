import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

_TRUTHY = ("1", "true", "on", "yes", "sim")


def clean_str(val: Optional[str], max_len: int = 255) -> Optional[str]:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", str(val)).strip()
    if not s:
        return None
    return s[:max_len]


def is_valid_email(val: Optional[str]) -> bool:
    if not val:
        return True
    return bool(_EMAIL_RE.match(val))


def is_valid_hex_color(val: Optional[str]) -> bool:
    return bool(val and _HEX_COLOR_RE.match(val))


def to_bool(val: Any, default: bool = False) -> bool:
    """Form/JSON friendly bool: real bools pass through, strings use a small truthy set."""
    if val is None:
        return default
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in _TRUTHY


def to_int_or_none(val: Any) -> Optional[int]:
    if val is None or val == "":
        return None
    if isinstance(val, bool):
        raise ValueError("boolean is not an integer")
    return int(val)


def to_decimal(val: Any) -> Decimal:
    """Raises ValueError on anything that is not a finite number."""
    try:
        d = Decimal(str(val).strip())
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a number: {val!r}") from e
    if not d.is_finite():
        raise ValueError(f"not a finite number: {val!r}")
    return d


def parse_date(val: Any) -> Optional[date]:
    """ISO date (YYYY-MM-DD); blank -> None; raises ValueError otherwise."""
    if val is None or val == "":
        return None
    if isinstance(val, date):
        return val
    return date.fromisoformat(str(val).strip()[:10])
