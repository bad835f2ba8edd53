from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .units import NormalizedUnit, UnitCategory


@dataclass(frozen=True)
class ParsedSize:
    value: float
    # Base unit of the parsed alias (ml, g, pk, each).
    unit: NormalizedUnit
    category: UnitCategory

    # Magnitude in the category's base unit; the only field compared across phrasings.
    normalized_value: float

    # Canonical form, e.g. "2pt", "500ml", "1.5kg", "6pk".
    display: str

    # Caller input with outer whitespace trimmed.
    original: str


@dataclass(frozen=True)
class StorePrice:
    """One size/price row for an item at a store."""

    size: str
    price: float


@dataclass(frozen=True)
class SizeMatch:
    size: str
    parsed: ParsedSize
    percent_diff: float
    is_exact: bool
    is_auto_matchable: bool
    # 0 = exact, 1 = right at the tolerance limit.
    match_score: float
    price: float | None = None


@dataclass(frozen=True)
class MatchResult:
    best_match: SizeMatch | None = None
    all_matches: list[SizeMatch] = field(default_factory=list)
    has_exact_match: bool = False
    has_auto_match: bool = False


@dataclass
class ListItem:
    id: str
    name: str
    quantity: float = 1
    size: str | None = None
    # Size the user originally picked, kept while the list sits at another store.
    original_size: str | None = None
    # Store that stocked original_size.
    original_store: str | None = None
    estimated_price: float | None = None
    price_override: bool = False
    size_override: bool = False

    @staticmethod
    def from_dict(row: dict[str, Any]) -> "ListItem":
        def pick(*keys: str) -> Any:
            for k in keys:
                if row.get(k) is not None:
                    return row[k]
            return None

        price = pick("estimated_price", "estimatedPrice")
        qty = pick("quantity")
        return ListItem(
            id=str(pick("id", "_id") or ""),
            name=str(pick("name") or ""),
            quantity=float(qty) if isinstance(qty, (int, float)) else 1,
            size=pick("size"),
            original_size=pick("original_size", "originalSize"),
            original_store=pick("original_store", "originalStore"),
            estimated_price=float(price) if isinstance(price, (int, float)) else None,
            price_override=bool(pick("price_override", "priceOverride")),
            size_override=bool(pick("size_override", "sizeOverride")),
        )


@dataclass
class ShoppingList:
    id: str
    name: str
    store: str | None = None
    items: list[ListItem] = field(default_factory=list)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ShoppingList":
        return ShoppingList(
            id=str(data.get("id") or data.get("_id") or ""),
            name=str(data.get("name") or ""),
            store=data.get("store"),
            items=[ListItem.from_dict(r) for r in data.get("items") or []],
        )


@dataclass(frozen=True)
class SizeChange:
    item_id: str
    item_name: str
    old_size: str | None
    new_size: str
    # False when the size came from the cheapest-available fallback or a near match.
    is_exact: bool


@dataclass(frozen=True)
class PriceChange:
    item_id: str
    item_name: str
    old_price: float | None
    new_price: float


@dataclass
class SwitchResult:
    success: bool
    previous_store: str | None
    new_store: str
    items_updated: int
    size_changes: list[SizeChange]
    price_changes: list[PriceChange]
    manual_overrides_preserved: int
    previous_total: float
    new_total: float
    savings: float
