from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Literal

from .match import price_per_unit, unit_label
from .normalize import normalize_size


PriceSource = Literal["personal", "crowdsourced", "ai"]


@dataclass(frozen=True)
class SizeVariant:
    size: str
    price: float | None = None
    source: PriceSource = "ai"
    confidence: float = 0.5


@dataclass(frozen=True)
class PurchaseRecord:
    store: str
    size: str | None = None


@dataclass(frozen=True)
class SizeOption:
    size: str
    size_normalized: str
    price: float | None
    price_per_unit: float | None
    unit_label: str   # "/100ml", "/100g" or "/each"
    source: PriceSource
    confidence: float
    is_usual: bool


@dataclass
class SizesForStore:
    item_name: str
    store: str
    sizes: list[SizeOption] = field(default_factory=list)
    default_size: str | None = None


def usual_size(history: Iterable[PurchaseRecord], store: str) -> str | None:
    """Size most often bought at this store; ties go to the one seen first."""
    wanted = store.strip().lower()
    counts = Counter(h.size or "" for h in history if h.store.strip().lower() == wanted)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _sort_key(opt: SizeOption) -> tuple[int, int, float]:
    if opt.price is None:
        return (0 if opt.is_usual else 1, 1, 0.0)
    return (0 if opt.is_usual else 1, 0, opt.price)


def build_size_options(
    item_name: str,
    store: str,
    variants: Iterable[SizeVariant],
    usual: str | None = None,
) -> SizesForStore:
    """Size picker rows for one item at one store.

    Usual size first, then cheapest first, unpriced last. Sizes that normalize
    to the same canonical form are collapsed to the first (best) row.
    """
    options = [
        SizeOption(
            size=v.size,
            size_normalized=normalize_size(v.size),
            price=v.price,
            price_per_unit=price_per_unit(v.price, v.size) if v.price is not None else None,
            unit_label=unit_label(v.size),
            source=v.source,
            confidence=v.confidence,
            is_usual=usual is not None and v.size == usual,
        )
        for v in variants
    ]
    options.sort(key=_sort_key)

    seen: set[str] = set()
    deduped: list[SizeOption] = []
    for opt in options:
        key = opt.size_normalized or opt.size
        if key in seen:
            continue
        seen.add(key)
        deduped.append(opt)

    default = usual
    if default is None:
        priced = next((o for o in deduped if o.price is not None), None)
        if priced is not None:
            default = priced.size
        elif deduped:
            default = deduped[0].size

    return SizesForStore(item_name=item_name, store=store, sizes=deduped, default_size=default)
