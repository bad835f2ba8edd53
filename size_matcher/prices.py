from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from .http import HttpClient, PriceLookupError
from .models import StorePrice


logger = logging.getLogger(__name__)

# (item_name, store) -> size/price rows available at that store
PriceLookup = Callable[[str, str], list[StorePrice]]


def _rows_to_prices(rows: Any) -> list[StorePrice]:
    out: list[StorePrice] = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        size = row.get("size") or row.get("sizeNormalized") or row.get("size_normalized")
        price = row.get("price")
        if price is None:
            price = row.get("estimatedPrice")
        # bool is an int subclass; a flag is never a price
        if not size or isinstance(price, bool) or not isinstance(price, (int, float)):
            continue
        out.append(StorePrice(size=str(size), price=float(price)))
    return out


class PriceApiClient:
    """Price lookup backed by the remote price service."""

    def __init__(self, *, api_url: str, api_key: str, timeout_s: float = 30.0):
        self.http = HttpClient(base_url=api_url, token=api_key, timeout_s=timeout_s)

    def __call__(self, item_name: str, store: str) -> list[StorePrice]:
        return self.lookup_prices(item_name, store)

    def lookup_prices(self, item_name: str, store: str) -> list[StorePrice]:
        data = self.http.get_json("/api/prices", params={"item": item_name, "store": store})
        if isinstance(data, dict):
            rows = data.get("items") or data.get("data") or data.get("sizes") or []
        elif isinstance(data, list):
            rows = data
        else:
            raise PriceLookupError(f"Unexpected price payload for {item_name!r} at {store!r}")

        prices = _rows_to_prices(rows)
        logger.debug("%d price rows for %r at %s", len(prices), item_name, store)
        return prices


class PriceBook:
    """In-memory price lookup: {store: {item name: [{size, price}, ...]}}.

    Store ids and item names are matched case-insensitively.
    """

    def __init__(self, data: dict[str, dict[str, list[dict[str, Any]]]]):
        self._data: dict[str, dict[str, list[StorePrice]]] = {}
        for store, items in data.items():
            self._data[store.strip().lower()] = {
                name.strip().lower(): _rows_to_prices(rows) for name, rows in items.items()
            }

    @staticmethod
    def load(path: str) -> "PriceBook":
        p = Path(path)
        try:
            data = json.loads(p.read_text())
        except (OSError, ValueError) as e:
            raise PriceLookupError(f"Could not read price book {path}: {e}") from e
        if not isinstance(data, dict):
            raise PriceLookupError(f"Price book {path} must be a JSON object keyed by store")
        return PriceBook(data)

    def __call__(self, item_name: str, store: str) -> list[StorePrice]:
        return self.lookup_prices(item_name, store)

    def lookup_prices(self, item_name: str, store: str) -> list[StorePrice]:
        items = self._data.get(store.strip().lower(), {})
        return list(items.get(item_name.strip().lower(), []))
