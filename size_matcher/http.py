from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests


logger = logging.getLogger(__name__)


class PriceLookupError(RuntimeError):
    """The price service could not be reached or returned something unusable."""


@dataclass(frozen=True)
class HttpClient:
    base_url: str
    token: str
    timeout_s: float = 30.0

    def get(self, path: str, *, params: dict | None = None) -> requests.Response:
        url = self.base_url.rstrip("/") + "/" + path.lstrip("/")
        return requests.get(
            url,
            params=params,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/json",
            },
            timeout=self.timeout_s,
        )

    def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = self.get(path, params=params)
        except requests.RequestException as e:
            logger.warning("price service request failed for %s: %s", path, e)
            raise PriceLookupError(f"Price service unreachable for {path}: {e}") from e

        if resp.status_code >= 400:
            logger.warning("price service returned %s for %s", resp.status_code, path)
            raise PriceLookupError(f"Price service error {resp.status_code} for {path}: {resp.text[:500]}")
        try:
            return resp.json()
        except ValueError as e:
            raise PriceLookupError(f"Failed to decode JSON from price service for {path}: {e}") from e
