#!/usr/bin/env python3
"""clc.config

Configuration for the CORINE Land Cover extraction pipeline.

Two kinds of configuration live here:
- The dataset location: a root folder holding one subfolder per vintage,
  named by year (2006/, 2012/, 2018/...). set_dataset_path() scans it once
  and returns a ClcConfig that is passed explicitly to extraction calls.
- Run settings (radius, CRS, vintage selection...) read from a YAML file,
  used by the CLI.

Design notes:
- YAML loading is strict: files must exist and be valid mappings.
- ClcConfig is frozen; build a new one instead of mutating it.
- All functions are pure apart from reading the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from clc.errors import ConfigurationError
from clc.log import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Dataset location
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ClcConfig:
    """Dataset root and the vintages found under it (sorted ascending)."""

    root: Path
    available_years: Tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.available_years:
            raise ConfigurationError(f"No CORINE Land Cover vintages available under {self.root}")


YEAR_FOLDER_PATTERN = re.compile(r"[1-9][0-9]*")


def _parse_year(name: str):
    """Return the folder name as an int year, or None if it isn't one.

    The name must read back as the same year (no padding or spaces), since
    the loader finds a vintage again at root/str(year).
    """
    if not YEAR_FOLDER_PATTERN.fullmatch(name):
        return None
    return int(name)


def discover_years(root: Path) -> Tuple[int, ...]:
    """List the vintage years available under `root`.

    Only immediate subdirectories named by a plain integer (2018, not
    02018) count.
    """
    if not root.is_dir():
        raise ConfigurationError(f"CORINE Land Cover root folder not found: {root}")

    years = []
    for child in root.iterdir():
        if not child.is_dir():
            continue
        year = _parse_year(child.name)
        if year is None:
            logger.debug(f"Skipping non-year folder: {child}")
            continue
        years.append(year)

    if not years:
        raise ConfigurationError(
            f"No vintage subfolders found in {root}. "
            "Expected one folder per dataset year (e.g. 2012/, 2018/)."
        )
    return tuple(sorted(years))


def set_dataset_path(path: Union[str, Path, None]) -> ClcConfig:
    """Point the pipeline at a dataset root folder.

    Scans the subfolders once and returns the config to pass to
    get_full_compositions() and friends.
    """
    if path is None or str(path).strip() == "":
        raise ConfigurationError("CORINE Land Cover dataset path is not set")
    root = Path(path).expanduser().resolve()
    years = discover_years(root)
    logger.info(f"CORINE Land Cover vintages in {root}: {list(years)}")
    return ClcConfig(root=root, available_years=years)


# -----------------------------------------------------------------------------
# YAML settings
# -----------------------------------------------------------------------------

DEFAULT_CONFIG_YAML = Path("config/clc.yaml")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "dataset_root": None,
    "buffer_radius_m": 250.0,
    "points_crs": "EPSG:4326",
    "vintage": "auto",
    "level": 3,
    "max_workers": 1,
}


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return as dict.

    Raises ConfigurationError on missing file or invalid format (non-mapping).
    """
    if not path.exists():
        raise ConfigurationError(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected YAML mapping at {path}")
    return data


def load_config(path: Path) -> Dict[str, Any]:
    """Load run settings from YAML, merged over DEFAULT_SETTINGS.

    Expects structure like:
        dataset_root: data/raw/clc
        buffer_radius_m: 250
        vintage: auto

    Unknown keys are kept as-is. Relative paths are relative to the working
    directory, like the other default paths.
    """
    data = load_yaml(path)
    settings = {**DEFAULT_SETTINGS, **data}

    if settings.get("dataset_root") is not None:
        settings["dataset_root"] = Path(str(settings["dataset_root"])).expanduser()

    return settings
