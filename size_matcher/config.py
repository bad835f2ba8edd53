from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .units import DEFAULT_TOLERANCE


REQUIRED_KEYS = [
    "PRICE_API_URL",
    "PRICE_API_KEY",
]

_PLACEHOLDERS = {"PLACEHOLDER", "MASKED", "CHANGEME", ""}


@dataclass(frozen=True)
class Config:
    price_api_url: str
    price_api_key: str
    tolerance: float = DEFAULT_TOLERANCE
    price_api_timeout_s: float = 30.0

    @staticmethod
    def load_from_env(env: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if env is None else env

        values: dict[str, str] = {}
        for k in REQUIRED_KEYS:
            val = env.get(k)
            if val is None:
                raise RuntimeError(f"Missing environment variable: {k}")
            if val.strip() in _PLACEHOLDERS:
                raise RuntimeError(f"Environment variable {k} is still a placeholder")
            values[k] = val.strip()

        tolerance = _float_setting(env, "SIZE_MATCH_TOLERANCE", DEFAULT_TOLERANCE)
        if not 0 < tolerance <= 1:
            raise RuntimeError(f"SIZE_MATCH_TOLERANCE must be in (0, 1], got {tolerance}")

        return Config(
            price_api_url=values["PRICE_API_URL"].rstrip("/"),
            price_api_key=values["PRICE_API_KEY"],
            tolerance=tolerance,
            price_api_timeout_s=_float_setting(env, "PRICE_API_TIMEOUT", 30.0),
        )


def _float_setting(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise RuntimeError(f"{key} must be a number, got {raw!r}") from e
