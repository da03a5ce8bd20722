"""Engine configuration loading.

All tunables live in config/engine_config.json. Components receive the
merged config dict and read their own section with ``.get(..., default)``,
so a partial file (or none at all) still yields a working engine.

Example:
    config = load_config()
    config["aggregation"]["global_timeout"]  -> 8.0
"""

import copy
import json
import logging
from pathlib import Path

from jurisdiction_engine.paths import ENGINE_CONFIG_PATH, LOCAL_OFFICIALS_PATH

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "coverage": {
        "full_coverage_states": ["CA"],
        "full_coverage_min_confidence": 0.5,
        "not_supported_max_confidence": 0.5,
    },
    "classifier": {
        "fuzzy_score_cutoff": 88,
        "source_weights": {
            "boundary_registry": 0.92,
            "name_pattern": 0.70,
            "fuzzy_match": 0.65,
            "place_name": 0.55,
            "fallback": 0.30,
        },
    },
    "aggregation": {
        "global_timeout": 8.0,
        "tier_retries": 1,
        "retry_backoff": 0.25,
    },
    "cache": {
        "location_ttl": 86400,
        "aggregation_ttl": 1800,
        "partial_ttl": 0,
        "sweep_interval": 300,
        "metrics_window": 500,
        "warm_up_zips": [],
        "warm_up_on_start": True,
    },
    "resilience": {
        "max_retries": 2,
        "backoff_base": 2,
        "backoff_max": 30,
        "request_timeout": 5,
        "circuit_breaker": {
            "failure_threshold": 5,
            "recovery_timeout": 60,
        },
    },
    "sources": {
        "geocodio": {
            "base_url": "https://api.geocod.io/v1.7",
            "key_env_var": "GEOCODIO_API_KEY",
        },
        "congress_gov": {
            "base_url": "https://api.congress.gov/v3",
            "key_env_var": "CONGRESS_API_KEY",
        },
        "openstates": {
            "base_url": "https://v3.openstates.org",
            "key_env_var": "OPENSTATES_API_KEY",
        },
        "local_registry": {
            "data_path": str(LOCAL_OFFICIALS_PATH),
        },
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested dicts are merged key by key; every other value (lists included)
    in ``override`` replaces the base value outright.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(path: str | Path | None = None) -> dict:
    """Load engine configuration, deep-merged over DEFAULT_CONFIG.

    Args:
        path: Config file to read. Defaults to config/engine_config.json.

    Returns:
        Complete configuration dict. A missing file yields the defaults.

    Raises:
        json.JSONDecodeError: If the file exists but is not valid JSON.
    """
    config_path = Path(path) if path is not None else ENGINE_CONFIG_PATH
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("Config not found at %s, using defaults", config_path)
        return copy.deepcopy(DEFAULT_CONFIG)
    except json.JSONDecodeError as exc:
        logger.error("Config at %s contains invalid JSON: %s", config_path, exc)
        raise
    return _deep_merge(DEFAULT_CONFIG, data)
