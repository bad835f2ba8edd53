from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from .config import REQUIRED_KEYS, Config
from .match import find_closest, format_price_per_unit, price_per_unit, rank_by_value, suggest_standard_size
from .models import ShoppingList
from .normalize import convert_size, normalize_size, parse_size
from .prices import PriceApiClient, PriceBook
from .report import build_switch_report
from .reprice import reprice_on_store_switch
from .units import CATEGORIES, DEFAULT_TOLERANCE


logger = logging.getLogger(__name__)

__version__ = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="size-matcher")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = p.add_subparsers(dest="cmd", required=False)

    p_config = sub.add_parser("config", help="Config commands")
    sub_config = p_config.add_subparsers(dest="config_cmd", required=True)
    sub_config.add_parser("keys", help="List required environment variables")
    sub_config.add_parser("check", help="Validate the environment config is filled")

    p_parse = sub.add_parser("parse", help="Show the parsed form of a size")
    p_parse.add_argument("size")

    p_norm = sub.add_parser("normalize", help="Print canonical display forms")
    p_norm.add_argument("sizes", nargs="+")

    p_conv = sub.add_parser("convert", help="Convert a size to another unit")
    p_conv.add_argument("size")
    p_conv.add_argument("unit", help="Target unit, e.g. ml, kg, pt")

    p_ppu = sub.add_parser("ppu", help="Price per 100ml / 100g / each")
    p_ppu.add_argument("price", type=float)
    p_ppu.add_argument("size")

    p_closest = sub.add_parser("closest", help="Find the closest size among candidates")
    p_closest.add_argument("target")
    p_closest.add_argument("candidates", nargs="+")
    p_closest.add_argument("--tolerance", type=float, default=DEFAULT_TOLERANCE)

    p_rank = sub.add_parser("rank", help="Sort sizes smallest to largest")
    p_rank.add_argument("sizes", nargs="+")

    p_suggest = sub.add_parser("suggest", help="Pick the most standard size")
    p_suggest.add_argument("sizes", nargs="+")
    p_suggest.add_argument("--category", choices=CATEGORIES, default=None)

    p_switch = sub.add_parser("switch", help="Re-price a shopping list for another store")
    p_switch.add_argument("list_path", help="Shopping list JSON file")
    p_switch.add_argument("--store", required=True, help="Store to switch to")
    p_switch.add_argument("--prices", default=None, help="Price book JSON (default: price service from env)")
    p_switch.add_argument("--tolerance", type=float, default=None)
    p_switch.add_argument("--write", action="store_true", help="Save the re-priced list back to list_path")
    p_switch.add_argument("--report", default="artifacts/switch_report.json")

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version:
        print(__version__)
        return 0

    if args.cmd is None:
        p.print_help()
        return 0

    try:
        return _dispatch(args)
    except (RuntimeError, ValueError) as exc:
        print(f"ERROR: {exc}")
        return 1


def _dispatch(args) -> int:
    if args.cmd == "config":
        if args.config_cmd == "keys":
            for k in REQUIRED_KEYS:
                print(k)
            return 0

        if args.config_cmd == "check":
            # Intentionally do not print secret values
            Config.load_from_env()
            print("OK: environment config present")
            return 0

    if args.cmd == "parse":
        parsed = parse_size(args.size)
        if parsed is None:
            print(f"Could not parse size: {args.size!r}")
            return 1
        print(json.dumps(asdict(parsed), indent=2))
        return 0

    if args.cmd == "normalize":
        for s in args.sizes:
            print(f"{s} -> {normalize_size(s)}")
        return 0

    if args.cmd == "convert":
        out = convert_size(args.size, args.unit)
        if out is None:
            print(f"Cannot convert {args.size!r} to {args.unit!r}")
            return 1
        print(out)
        return 0

    if args.cmd == "ppu":
        ppu = price_per_unit(args.price, args.size)
        parsed = parse_size(args.size)
        if ppu is None or parsed is None:
            print(f"Could not parse size: {args.size!r}")
            return 1
        print(format_price_per_unit(ppu, parsed.category))
        return 0

    if args.cmd == "closest":
        result = find_closest(args.target, args.candidates, args.tolerance)
        if result.best_match is None:
            print("No comparable sizes.")
            return 1
        for i, m in enumerate(result.all_matches, 1):
            tag = "exact" if m.is_exact else ("auto" if m.is_auto_matchable else "outside tolerance")
            print(f"{i}. {m.size}  ({m.parsed.display})  diff={m.percent_diff:.1%}  [{tag}]")
        return 0

    if args.cmd == "rank":
        for s in rank_by_value(args.sizes):
            print(s)
        return 0

    if args.cmd == "suggest":
        best = suggest_standard_size(args.sizes, args.category)
        if best is None:
            print("No parsable sizes.")
            return 1
        print(best)
        return 0

    if args.cmd == "switch":
        return _run_switch(args)

    raise RuntimeError("unreachable")


def _run_switch(args) -> int:
    path = Path(args.list_path)
    try:
        shopping_list = ShoppingList.from_dict(json.loads(path.read_text()))
    except (OSError, ValueError) as e:
        raise RuntimeError(f"Could not read shopping list {path}: {e}") from e

    tolerance = args.tolerance
    if args.prices:
        lookup = PriceBook.load(args.prices)
    else:
        cfg = Config.load_from_env()
        lookup = PriceApiClient(api_url=cfg.price_api_url, api_key=cfg.price_api_key, timeout_s=cfg.price_api_timeout_s)
        if tolerance is None:
            tolerance = cfg.tolerance
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCE

    print(f"Switching '{shopping_list.name}' ({len(shopping_list.items)} items) to {args.store}.")
    result = reprice_on_store_switch(shopping_list, args.store, lookup, tolerance=tolerance)

    report = build_switch_report(result, list_id=shopping_list.id)
    print("\n" + report.summary_text())
    out = report.write_json(args.report)
    print(f"\nReport written to {out}")

    if args.write:
        path.write_text(json.dumps(asdict(shopping_list), indent=2))
        logger.info("saved re-priced list to %s", path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
