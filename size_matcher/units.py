from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping


UnitCategory = Literal["volume", "weight", "count"]
NormalizedUnit = Literal["ml", "l", "pt", "g", "kg", "oz", "lb", "pk", "each"]

CATEGORIES: tuple[UnitCategory, ...] = ("volume", "weight", "count")

# Auto-match tolerance used when switching stores (250g -> 227g butter is ~9%).
DEFAULT_TOLERANCE = 0.20
# Below this difference two sizes are treated as the same size (rounding noise).
EXACT_TOLERANCE = 0.01

PINT_ML = 568
POUND_G = 453.6
OUNCE_G = 28.35


@dataclass(frozen=True)
class UnitDefinition:
    alias: str
    factor: float
    base_unit: NormalizedUnit
    category: UnitCategory


def _define(category: UnitCategory, base_unit: NormalizedUnit, factor: float, *aliases: str) -> list[UnitDefinition]:
    return [UnitDefinition(alias=a, factor=factor, base_unit=base_unit, category=category) for a in aliases]


_DEFINITIONS: list[UnitDefinition] = [
    # volume, base ml
    *_define("volume", "ml", PINT_ML, "pt", "pint", "pints"),
    *_define("volume", "ml", 1000, "l", "L", "litre", "liter", "litres", "liters"),
    *_define("volume", "ml", 1, "ml", "millilitre", "milliliter", "millilitres", "milliliters"),
    *_define("volume", "ml", 10, "cl", "centilitre", "centiliter"),
    # weight, base g
    *_define("weight", "g", 1000, "kg", "kilogram", "kilograms", "kilo", "kilos"),
    *_define("weight", "g", 1, "g", "gram", "grams"),
    *_define("weight", "g", OUNCE_G, "oz", "ounce", "ounces"),
    *_define("weight", "g", POUND_G, "lb", "lbs", "pound", "pounds"),
    # count
    *_define("count", "pk", 1, "pk", "pack", "packs", "x"),
    *_define("count", "each", 1, "each", "ea", "pcs", "pieces"),
]


def _build_table(defs: list[UnitDefinition]) -> Mapping[str, UnitDefinition]:
    table: dict[str, UnitDefinition] = {}
    for d in defs:
        if d.alias in table:
            raise ValueError(f"Duplicate unit alias: {d.alias}")
        table[d.alias] = d
    return MappingProxyType(table)


UNIT_TABLE: Mapping[str, UnitDefinition] = _build_table(_DEFINITIONS)

UNIT_DISPLAY: Mapping[str, str] = MappingProxyType({
    "ml": "ml",
    "l": "L",
    "pt": "pt",
    "g": "g",
    "kg": "kg",
    "oz": "oz",
    "lb": "lb",
    "pk": "pk",
    "each": "each",
})

PRICE_PER_UNIT_LABELS: Mapping[str, str] = MappingProxyType({
    "volume": "/100ml",
    "weight": "/100g",
    "count": "/each",
})


def lookup(alias: str) -> UnitDefinition | None:
    """Return the definition for an exact (case-sensitive) alias, or None."""
    return UNIT_TABLE.get(alias)
