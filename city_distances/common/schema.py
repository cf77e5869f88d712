"""Minimal strict schema for pipeline configuration."""

from __future__ import annotations

from typing import Any, Callable

from city_distances.common.constants import LOG_LEVELS
from city_distances.common.errors import ConfigError

KNOWN_KEYS = {
    "store_url",
    "store_key",
    "batch_delay_ms",
    "batch_size",
    "max_distance_km",
    "points_table",
    "distances_table",
    "existing_pairs_limit",
    "max_attempts",
    "log_level",
    "summary_path",
}
REQUIRED_KEYS = {"store_url", "store_key"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = {key for key in required if obj.get(key) in (None, "")}
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str) -> None:
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _coerce(obj: dict, key: str, kind: Callable[[Any], Any], ctx: str) -> Any:
    value = obj[key]
    if isinstance(value, bool):
        raise ConfigError(f"{ctx}.{key} must be numeric, got {value!r}")
    try:
        if kind is int and isinstance(value, str):
            return int(value.strip())
        if kind is int and isinstance(value, float):
            if not value.is_integer():
                raise ValueError(value)
            return int(value)
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{ctx}.{key} must be {kind.__name__}, got {value!r}") from exc


def assert_known_keys(cfg: dict, ctx: str) -> dict:
    if not isinstance(cfg, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    _assert_no_unknown_keys(cfg, KNOWN_KEYS, ctx)
    return cfg


def validate_pipeline_config(cfg: dict, ctx: str = "config") -> dict:
    assert_known_keys(cfg, ctx)
    _assert_required_keys(cfg, REQUIRED_KEYS, ctx)

    out = dict(cfg)
    out["batch_size"] = _coerce(cfg, "batch_size", int, ctx)
    out["batch_delay_ms"] = _coerce(cfg, "batch_delay_ms", float, ctx)
    out["max_distance_km"] = _coerce(cfg, "max_distance_km", float, ctx)
    out["existing_pairs_limit"] = _coerce(cfg, "existing_pairs_limit", int, ctx)
    out["max_attempts"] = _coerce(cfg, "max_attempts", int, ctx)

    if out["batch_size"] < 1:
        raise ConfigError(f"{ctx}.batch_size must be at least 1")
    if out["batch_delay_ms"] < 0:
        raise ConfigError(f"{ctx}.batch_delay_ms must not be negative")
    if not out["max_distance_km"] > 0 or out["max_distance_km"] == float("inf"):
        raise ConfigError(f"{ctx}.max_distance_km must be a positive finite number")
    if out["existing_pairs_limit"] < 1:
        raise ConfigError(f"{ctx}.existing_pairs_limit must be at least 1")
    if out["max_attempts"] < 1:
        raise ConfigError(f"{ctx}.max_attempts must be at least 1")

    level = str(cfg["log_level"]).upper()
    if level == "WARN":
        level = "WARNING"
    if level not in LOG_LEVELS:
        raise ConfigError(f"{ctx}.log_level must be one of {', '.join(LOG_LEVELS)}")
    out["log_level"] = level

    for key in ("store_url", "store_key", "points_table", "distances_table"):
        out[key] = str(cfg[key])
    return out
