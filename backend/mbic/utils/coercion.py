"""
Coercion helpers for loosely-typed values coming back from stored procedures.

Numeric columns may arrive as numbers, Decimals, numeric strings or null, and
boolean columns as "t"/"f" text. None of these helpers ever raise: a value
that cannot be converted yields the caller's fallback.
"""
import math
import re
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

TRUE_STRINGS = frozenset({"true", "t", "1"})
FALSE_STRINGS = frozenset({"false", "f", "0"})

_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_PREFIXED_LITERAL = re.compile(r"^(0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+)$")


def parse_number_text(text: str) -> float:
    """Parse text the way JavaScript's Number() does; NaN when unparseable."""
    stripped = text.strip()
    if not stripped:
        return 0.0
    if _PREFIXED_LITERAL.match(stripped):
        return float(int(stripped, 0))
    if _DECIMAL_LITERAL.match(stripped):
        return float(stripped)
    if stripped in ("Infinity", "+Infinity"):
        return math.inf
    if stripped == "-Infinity":
        return -math.inf
    return math.nan


def coerce_number(value: Any, fallback: float = 0) -> float:
    """Return ``value`` as a finite number, or ``fallback``.

    - ``None`` -> fallback
    - finite int/float -> unchanged; finite Decimal -> float
    - str -> parsed like ``Number(value)``, used only if finite
    - bool and anything else -> fallback
    """
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else fallback
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else fallback
    if isinstance(value, str):
        parsed = parse_number_text(value)
        return parsed if math.isfinite(parsed) else fallback
    return fallback


def coerce_optional_number(value: Any) -> Optional[float]:
    """Like coerce_number, but a null stays null."""
    if value is None:
        return None
    return coerce_number(value, 0)


def coerce_int(value: Any, fallback: int = 0) -> int:
    number = coerce_number(value, fallback)
    return int(number)


def coerce_boolean(value: Any, fallback: bool = False) -> bool:
    """Return ``value`` as a bool, or ``fallback``.

    Numbers are true when nonzero; strings are matched case-insensitively
    against ``t``/``true``/``1`` and ``f``/``false``/``0``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and math.isnan(value):
            return fallback
        if isinstance(value, Decimal) and value.is_nan():
            return fallback
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in TRUE_STRINGS:
            return True
        if normalized in FALSE_STRINGS:
            return False
    return fallback


def coerce_display_name(value: Any, placeholder: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return placeholder


def coerce_text(value: Any, fallback: str = "") -> str:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def coerce_optional_text(value: Any) -> Optional[str]:
    """Trimmed text, or None when missing/blank."""
    if value is None:
        return None
    text = coerce_text(value).strip()
    return text or None


def pick_value(row: Mapping[str, Any], keys: Iterable[str], fallback: Any = None) -> Any:
    """First value among ``keys`` that is present and not null/empty."""
    for key in keys:
        if key in row:
            value = row[key]
            if value is not None and value != "":
                return value
    return fallback
