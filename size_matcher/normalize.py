from __future__ import annotations

import math
import re

from .models import ParsedSize
from .units import PINT_ML, UNIT_DISPLAY, UnitCategory, lookup


# "2pt", "500ml", "1.5kg", "6-pack", "2 pints" (whitespace already stripped)
_SIMPLE_RE = re.compile(r"^([0-9]+(?:\.[0-9]+)?)[-x]?([a-z]+)$")

# "4x100g", "6 x 500ml"
_MULTIPACK_RE = re.compile(r"^([0-9]+)x([0-9]+(?:\.[0-9]+)?)([a-z]+)$")

_WS_RE = re.compile(r"\s+")

# UK milk sizes 1pt..6pt are shown in pints.
_PINT_DISPLAY_MAX = 6 * PINT_ML


def _format_number(val: float) -> str:
    if val == int(val):
        return str(int(val))
    txt = f"{val:.1f}"
    return txt[:-2] if txt.endswith(".0") else txt


def _display_for(normalized_value: float, category: UnitCategory, base_unit: str) -> str:
    unit = base_unit
    val = normalized_value

    if category == "volume":
        if normalized_value % PINT_ML == 0 and PINT_ML <= normalized_value <= _PINT_DISPLAY_MAX:
            unit, val = "pt", normalized_value / PINT_ML
        elif normalized_value >= 1000:
            unit, val = "l", normalized_value / 1000
        else:
            unit = "ml"
    elif category == "weight":
        if normalized_value >= 1000:
            unit, val = "kg", normalized_value / 1000
        else:
            unit = "g"

    return f"{_format_number(val)}{UNIT_DISPLAY[unit]}"


def parse_size(raw: str) -> ParsedSize | None:
    """Parse a size string like '2 pints', '500ml', '6-pack' or '4x100g'.

    Returns None for anything outside the supported grammar: empty input,
    no leading number, a bare number, or an unknown unit.
    """
    if not raw or not isinstance(raw, str):
        return None

    original = raw.strip()
    cleaned = _WS_RE.sub("", original.lower())
    if not cleaned:
        return None

    m = _SIMPLE_RE.match(cleaned)
    if m:
        value = float(m.group(1))
        unit_str = m.group(2)
    else:
        m = _MULTIPACK_RE.match(cleaned)
        if not m:
            return None
        # total quantity, e.g. 6 x 500ml -> 3000ml
        value = float(m.group(1)) * float(m.group(2))
        unit_str = m.group(3)

    unit = lookup(unit_str)
    if unit is None:
        return None

    normalized_value = value * unit.factor
    # absurdly long digit runs overflow to inf
    if not (math.isfinite(value) and math.isfinite(normalized_value)):
        return None
    return ParsedSize(
        value=value,
        unit=unit.base_unit,
        category=unit.category,
        normalized_value=normalized_value,
        display=_display_for(normalized_value, unit.category, unit.base_unit),
        original=original,
    )


def normalize_size(raw: str) -> str:
    """Canonical display form of a size, or the input unchanged if it can't be parsed."""
    parsed = parse_size(raw)
    return parsed.display if parsed else raw


def convert_size(raw: str, target_unit: str) -> str | None:
    """Express a size in another unit of the same category ('2pt' -> '1136ml')."""
    parsed = parse_size(raw)
    if parsed is None:
        return None

    target = lookup(target_unit)
    if target is None or target.category != parsed.category:
        return None

    val = parsed.normalized_value / target.factor
    return f"{_format_number(val)}{UNIT_DISPLAY.get(target_unit, target_unit)}"
