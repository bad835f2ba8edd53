from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable

from .match import are_equivalent, find_closest
from .models import ListItem, PriceChange, ShoppingList, SizeChange, StorePrice, SwitchResult
from .normalize import parse_size
from .prices import PriceLookup
from .units import DEFAULT_TOLERANCE


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Resolved:
    row: StorePrice
    is_exact: bool


@dataclass
class _SwitchPlan:
    """Replacement items and change log accumulated before anything is committed."""

    items: list[ListItem] = field(default_factory=list)
    size_changes: list[SizeChange] = field(default_factory=list)
    price_changes: list[PriceChange] = field(default_factory=list)
    overrides_preserved: int = 0
    items_updated: int = 0

    def keep(self, item: ListItem) -> None:
        self.items.append(item)

    def update(self, old: ListItem, new: ListItem) -> None:
        self.items.append(new)
        if new != old:
            self.items_updated += 1


def _same_store(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return False
    return a.strip().lower() == b.strip().lower()


def _same_size(a: str | None, b: str | None) -> bool:
    if a is None or b is None:
        return a == b
    return a == b or are_equivalent(a, b)


def find_exact_size_match(size: str | None, available: Iterable[StorePrice]) -> StorePrice | None:
    """First row at the store with the same size, by spelling or by quantity."""
    if not size:
        return None
    for row in available:
        if _same_size(row.size, size):
            return row
    return None


def calculate_list_total(items: Iterable[ListItem]) -> float:
    return round(sum((it.estimated_price or 0) * it.quantity for it in items), 2)


def _resolve_size(target: str | None, available: list[StorePrice], tolerance: float) -> _Resolved | None:
    exact = find_exact_size_match(target, available)
    if exact is not None:
        return _Resolved(row=exact, is_exact=True)

    # Without a parsable target there is nothing to measure closeness against.
    target_parsed = parse_size(target) if target else None
    if target_parsed is None:
        return None

    result = find_closest(target, available, tolerance)
    best = result.best_match
    if best is not None and result.has_auto_match and best.price is not None:
        return _Resolved(row=StorePrice(size=best.size, price=best.price), is_exact=best.is_exact)

    # Cheapest parsable size, same category first; other categories only if none.
    parsed_rows = [(r, parse_size(r.size)) for r in available]
    parsed_rows = [(r, p) for r, p in parsed_rows if p is not None]
    same_category = [r for r, p in parsed_rows if p.category == target_parsed.category]
    pool = same_category or [r for r, _ in parsed_rows]
    if not pool:
        return None
    return _Resolved(row=min(pool, key=lambda r: r.price), is_exact=False)


def _is_switch_back(item: ListItem, new_store: str, available: list[StorePrice]) -> bool:
    if not item.original_size:
        return False
    if item.original_store is not None:
        return _same_store(item.original_store, new_store)
    # Legacy items don't know where original_size came from; restore if it's stocked here.
    return find_exact_size_match(item.original_size, available) is not None


def _plan_size_override(plan: _SwitchPlan, item: ListItem, available: list[StorePrice]) -> None:
    row = find_exact_size_match(item.size, available)
    if row is None or row.price == item.estimated_price:
        plan.keep(item)
        return

    plan.price_changes.append(PriceChange(
        item_id=item.id, item_name=item.name, old_price=item.estimated_price, new_price=row.price,
    ))
    plan.update(item, replace(item, estimated_price=row.price))
    logger.debug("%s: size override kept %s, price %s -> %s", item.name, item.size, item.estimated_price, row.price)


def _plan_item(
    plan: _SwitchPlan,
    item: ListItem,
    *,
    previous_store: str | None,
    new_store: str,
    lookup_prices: PriceLookup,
    tolerance: float,
) -> None:
    if item.price_override:
        plan.overrides_preserved += 1
        plan.keep(item)
        logger.debug("%s: price override, left as is", item.name)
        return

    available = list(lookup_prices(item.name, new_store))

    if item.size_override:
        _plan_size_override(plan, item, available)
        return

    if not available:
        plan.keep(item)
        logger.debug("%s: no prices at %s, keeping current price", item.name, new_store)
        return

    restoring = _is_switch_back(item, new_store, available)
    target = item.original_size if restoring else item.size

    resolved = _resolve_size(target, available, tolerance)
    if resolved is None:
        plan.keep(item)
        logger.debug("%s: size %r not matchable, keeping current price", item.name, target)
        return

    new = replace(item)
    new_size = resolved.row.size
    if not _same_size(new_size, item.size):
        if not restoring and new.original_size is None:
            new.original_size = item.size
            new.original_store = previous_store
        new.size = new_size
        plan.size_changes.append(SizeChange(
            item_id=item.id, item_name=item.name, old_size=item.size, new_size=new_size,
            is_exact=resolved.is_exact,
        ))
        logger.debug("%s: size %s -> %s (exact=%s)", item.name, item.size, new_size, resolved.is_exact)

    if restoring:
        new.original_size = None
        new.original_store = None

    if resolved.row.price != item.estimated_price:
        new.estimated_price = resolved.row.price
        plan.price_changes.append(PriceChange(
            item_id=item.id, item_name=item.name, old_price=item.estimated_price, new_price=resolved.row.price,
        ))

    plan.update(item, new)


def reprice_on_store_switch(
    shopping_list: ShoppingList,
    new_store: str,
    lookup_prices: PriceLookup,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
) -> SwitchResult:
    """Re-price every item on a list for a new store.

    Items are resolved into a plan first and swapped onto the list only once
    every item is done, so a failing price lookup leaves the list exactly as
    it was; the error is not retried and propagates to the caller.
    """
    previous_store = shopping_list.store
    previous_total = calculate_list_total(shopping_list.items)

    plan = _SwitchPlan()
    for item in shopping_list.items:
        _plan_item(
            plan,
            item,
            previous_store=previous_store,
            new_store=new_store,
            lookup_prices=lookup_prices,
            tolerance=tolerance,
        )

    shopping_list.items = plan.items
    shopping_list.store = new_store

    new_total = calculate_list_total(plan.items)
    result = SwitchResult(
        success=True,
        previous_store=previous_store,
        new_store=new_store,
        items_updated=plan.items_updated,
        size_changes=plan.size_changes,
        price_changes=plan.price_changes,
        manual_overrides_preserved=plan.overrides_preserved,
        previous_total=previous_total,
        new_total=new_total,
        savings=round(previous_total - new_total, 2),
    )
    logger.info(
        "switched list %s %s -> %s: %d updated, %d size changes, %d overrides kept, savings %.2f",
        shopping_list.id, previous_store, new_store, result.items_updated,
        len(result.size_changes), result.manual_overrides_preserved, result.savings,
    )
    return result
