from __future__ import annotations

from typing import Iterable

from .models import MatchResult, ParsedSize, SizeMatch, StorePrice
from .normalize import parse_size
from .units import (
    CATEGORIES,
    DEFAULT_TOLERANCE,
    EXACT_TOLERANCE,
    PRICE_PER_UNIT_LABELS,
    UnitCategory,
)


# Common UK pack sizes (1pt, 2pt, 1L, 2L, 4pt / typical weights / pack counts).
_COMMON_VOLUMES = {568, 1136, 1000, 2000, 2272}
_COMMON_WEIGHTS = {250, 500, 1000, 400, 800}
_COMMON_COUNTS = {6, 12, 4, 8, 10}


def price_per_unit(price: float, size: str) -> float | None:
    """Price per 100ml / 100g, or per item for count sizes."""
    parsed = parse_size(size)
    if parsed is None:
        return None
    if parsed.category == "count":
        if parsed.value == 0:
            return None
        return price / parsed.value
    if parsed.normalized_value == 0:
        return None
    return (price / parsed.normalized_value) * 100


def format_price_per_unit(ppu: float, category: UnitCategory) -> str:
    txt = f"{ppu:.3f}" if ppu < 0.01 else f"{ppu:.2f}"
    return f"£{txt}{PRICE_PER_UNIT_LABELS[category]}"


def unit_label(size: str) -> str:
    parsed = parse_size(size)
    if parsed is None:
        return PRICE_PER_UNIT_LABELS["count"]
    return PRICE_PER_UNIT_LABELS[parsed.category]


def _parse_pair(a: str, b: str) -> tuple[ParsedSize, ParsedSize] | None:
    pa = parse_size(a)
    pb = parse_size(b)
    if pa is None or pb is None or pa.category != pb.category:
        return None
    return pa, pb


def _diff(a: ParsedSize, b: ParsedSize) -> float:
    denom = max(a.normalized_value, b.normalized_value)
    if denom == 0:
        return 0.0
    return abs(a.normalized_value - b.normalized_value) / denom


def are_comparable(a: str, b: str) -> bool:
    return _parse_pair(a, b) is not None


def are_equivalent(a: str, b: str) -> bool:
    """True when both strings denote the same quantity ('2pt' == '2 pints')."""
    pair = _parse_pair(a, b)
    return pair is not None and pair[0].normalized_value == pair[1].normalized_value


def percent_diff(a: str, b: str) -> float | None:
    """Relative difference against the larger of the two sizes (order-independent)."""
    pair = _parse_pair(a, b)
    if pair is None:
        return None
    return _diff(*pair)


def _candidate_fields(c: str | StorePrice) -> tuple[str, float | None]:
    if isinstance(c, StorePrice):
        return c.size, c.price
    return c, None


def find_closest(
    target: str,
    candidates: Iterable[str | StorePrice],
    tolerance: float = DEFAULT_TOLERANCE,
) -> MatchResult:
    """Rank same-category candidates by closeness to the target size.

    best_match is the closest candidate even when it falls outside the
    tolerance; has_auto_match tells the caller whether it's close enough to
    act on. Candidates may be plain size strings or StorePrice rows, in which
    case the price is carried onto the match.
    """
    if tolerance <= 0:
        raise ValueError(f"tolerance must be positive, got {tolerance}")

    target_parsed = parse_size(target)
    if target_parsed is None:
        return MatchResult()

    matches: list[SizeMatch] = []
    for c in candidates:
        size, price = _candidate_fields(c)
        parsed = parse_size(size)
        if parsed is None or parsed.category != target_parsed.category:
            continue
        diff = _diff(target_parsed, parsed)
        matches.append(SizeMatch(
            size=size,
            parsed=parsed,
            percent_diff=diff,
            is_exact=diff <= EXACT_TOLERANCE,
            is_auto_matchable=diff <= tolerance,
            match_score=diff / tolerance,
            price=price,
        ))

    if not matches:
        return MatchResult()

    matches.sort(key=lambda m: m.percent_diff)
    best = matches[0]
    return MatchResult(
        best_match=best,
        all_matches=matches,
        has_exact_match=best.is_exact,
        has_auto_match=best.is_auto_matchable,
    )


def _parsed_pairs(sizes: Iterable[str]) -> list[tuple[str, ParsedSize]]:
    out: list[tuple[str, ParsedSize]] = []
    for s in sizes:
        p = parse_size(s)
        if p is not None:
            out.append((s, p))
    return out


def rank_by_value(sizes: Iterable[str]) -> list[str]:
    """Smallest to largest by normalized value; unparsable sizes are dropped.

    Mixed categories simply sort by raw magnitude.
    """
    pairs = _parsed_pairs(sizes)
    pairs.sort(key=lambda x: x[1].normalized_value)
    return [s for s, _ in pairs]


def group_by_category(sizes: Iterable[str]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {c: [] for c in CATEGORIES}
    for s, p in _parsed_pairs(sizes):
        groups[p.category].append(s)
    return groups


def _roundness(p: ParsedSize) -> int:
    score = 0
    if p.normalized_value % 1000 == 0:
        score += 3
    elif p.normalized_value % 500 == 0:
        score += 2
    elif p.normalized_value % 100 == 0:
        score += 1

    if p.category == "volume" and p.normalized_value in _COMMON_VOLUMES:
        score += 2
    elif p.category == "weight" and p.normalized_value in _COMMON_WEIGHTS:
        score += 2
    elif p.category == "count" and p.value in _COMMON_COUNTS:
        score += 2
    return score


def suggest_standard_size(sizes: Iterable[str], category: UnitCategory | None = None) -> str | None:
    """Pick the 'most standard' size: round numbers and common UK pack sizes win.

    Ties go to the smallest size, then to input order.
    """
    pairs = [(s, p) for s, p in _parsed_pairs(sizes) if category is None or p.category == category]
    if not pairs:
        return None
    # min() keeps the first of equal keys
    best = min(pairs, key=lambda x: (-_roundness(x[1]), x[1].normalized_value))
    return best[0]
