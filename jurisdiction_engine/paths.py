"""Centralized path constants for the jurisdiction engine.

Every file and directory path used by the engine is defined here as a
module-level constant. Source files import from this module instead of
constructing ad-hoc ``Path(...)`` literals scattered throughout the codebase.

Design rules:
  1. This module imports ONLY ``pathlib.Path`` -- no project imports, no
     config imports, no runtime validation.
  2. No path existence checks at import time.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# -- Project Root --
# ---------------------------------------------------------------------------

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
"""Absolute path to the project root directory (one level above the package)."""

# ---------------------------------------------------------------------------
# -- Config Paths --
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = PROJECT_ROOT / "config"
"""Directory containing engine configuration files."""

ENGINE_CONFIG_PATH: Path = CONFIG_DIR / "engine_config.json"
"""Main engine configuration (coverage, cache, aggregation, sources)."""

# ---------------------------------------------------------------------------
# -- Data Paths --
# ---------------------------------------------------------------------------

DATA_DIR: Path = PROJECT_ROOT / "data"
"""Top-level data directory for read-only reference datasets."""

ZIP_LOCATIONS_PATH: Path = DATA_DIR / "zip_locations.json"
"""Offline ZIP -> location table used by ZipTableLookup."""

JURISDICTION_REGISTRY_PATH: Path = DATA_DIR / "jurisdiction_registry.json"
"""Known incorporated cities, census designated places and special districts."""

LOCAL_OFFICIALS_PATH: Path = DATA_DIR / "local_officials.json"
"""County supervisors and municipal officials served by the local adapter."""
