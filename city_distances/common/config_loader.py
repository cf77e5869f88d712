"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from city_distances.common.errors import ConfigError
from city_distances.common.fs import read_yaml
from city_distances.common.schema import assert_known_keys, validate_pipeline_config

CONFIG_PATH_ENV = "CITY_DISTANCES_CONFIG"

DEFAULTS: dict[str, Any] = {
    "store_url": None,
    "store_key": None,
    "batch_delay_ms": 25,
    "batch_size": 500,
    "max_distance_km": 3000,
    "points_table": "cities",
    "distances_table": "city_distances",
    "existing_pairs_limit": 1_000_000,
    "max_attempts": 3,
    "log_level": "INFO",
    "summary_path": None,
}

ENV_KEYS = {
    "SUPABASE_URL": "store_url",
    "SUPABASE_SERVICE_KEY": "store_key",
    "BATCH_DELAY_MS": "batch_delay_ms",
    "BATCH_SIZE": "batch_size",
    "MAX_KM": "max_distance_km",
    "EXISTING_PAIRS_LIMIT": "existing_pairs_limit",
    "STORE_MAX_ATTEMPTS": "max_attempts",
    "LOG_LEVEL": "log_level",
    "SUMMARY_PATH": "summary_path",
}


@dataclass(frozen=True)
class PipelineConfig:
    store_url: str
    store_key: str
    batch_delay_ms: float = 25
    batch_size: int = 500
    max_distance_km: float = 3000.0
    points_table: str = "cities"
    distances_table: str = "city_distances"
    existing_pairs_limit: int = 1_000_000
    max_attempts: int = 3
    log_level: str = "INFO"
    summary_path: Path | None = None


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_overlay(path: Path | None) -> dict:
    if path is None:
        return {}
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        overlay = read_yaml(path)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Config file {path} could not be read: {exc}") from exc
    if overlay is None:
        return {}
    return assert_known_keys(overlay, str(path))


def _env_overlay(environ: Mapping[str, str]) -> dict:
    overlay = {}
    for env_name, key in ENV_KEYS.items():
        value = environ.get(env_name)
        if value is None or value.strip() == "":
            continue
        overlay[key] = value.strip()
    return overlay


def load_config(environ: Mapping[str, str], *, config_path: Path | None = None) -> PipelineConfig:
    """Resolve defaults, then the optional YAML file, then environment variables."""
    if config_path is None and environ.get(CONFIG_PATH_ENV):
        config_path = Path(environ[CONFIG_PATH_ENV])

    merged = _deep_merge(DEFAULTS, _load_yaml_overlay(config_path))
    merged = _deep_merge(merged, _env_overlay(environ))
    cfg = validate_pipeline_config(merged)

    summary_path = cfg["summary_path"]
    return PipelineConfig(
        store_url=cfg["store_url"],
        store_key=cfg["store_key"],
        batch_delay_ms=cfg["batch_delay_ms"],
        batch_size=cfg["batch_size"],
        max_distance_km=cfg["max_distance_km"],
        points_table=cfg["points_table"],
        distances_table=cfg["distances_table"],
        existing_pairs_limit=cfg["existing_pairs_limit"],
        max_attempts=cfg["max_attempts"],
        log_level=cfg["log_level"],
        summary_path=Path(summary_path) if summary_path else None,
    )
