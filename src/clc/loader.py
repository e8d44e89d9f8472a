#!/usr/bin/env python3
"""clc.loader

Locate and open the CORINE Land Cover layer of one vintage.

A vintage folder holds either:
- a GeoPackage (any *.gpkg, searched recursively), or
- a shapefile set whose name follows the CLC convention, e.g.
  CLC12_FR_RGF.shp (+ .dbf/.shx/.prj sidecars).

The GeoPackage wins when both are present. Exactly one candidate file must
match; zero or several raise DatasetFileError rather than guessing.

Notes:
- The land cover code column is found by name (anything starting with
  "code", case-insensitive: Code_12, CODE_18, code) and renamed to "code".
- Codes are normalized so 211, "211" and 211.0 all become "211".
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

import geopandas as gpd

from clc.errors import DatasetFileError
from clc.log import get_logger

logger = get_logger(__name__)

GEOPACKAGE = "geopackage"
SHAPEFILE = "shapefile"

GPKG_PATTERN = re.compile(r".*\.gpkg$", re.IGNORECASE)
SHP_PATTERN = re.compile(r"CLC\d{2}_.*\.shp$")
CODE_PATTERN = re.compile(r"^code", re.IGNORECASE)

CODE_COLUMN = "code"
CODE_VALUE_PATTERN = re.compile(r"[0-9]+")


# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------

def _list_matching(folder: Path, pattern: re.Pattern) -> List[Path]:
    """Files under `folder` (recursive) whose name matches `pattern`, sorted."""
    return sorted(p for p in folder.rglob("*") if p.is_file() and pattern.search(p.name))


def normalize_code(x) -> str:
    """Normalize a land cover code to a comparable string.

    Handles ints, floats read from dbf files ('211.0'), and padded strings.
    Returns empty string for missing values.
    """
    if x is None:
        return ""
    if isinstance(x, float):
        if x != x:
            return ""
        if x.is_integer():
            return str(int(x))
    s = str(x).strip()
    if re.fullmatch(r"\d+\.0+", s):
        s = s.split(".", 1)[0]
    return s


def pick_code_field(columns: List[str], preferred: Optional[str] = None) -> str:
    """Find the column holding the land cover code.

    If preferred is provided and exists, use it. Otherwise the single column
    whose name starts with "code" (any case). CLC releases name it
    differently across years (code_12, Code_18, CODE_06...).
    """
    if preferred:
        if preferred in columns:
            return preferred
        raise DatasetFileError(f"Code field '{preferred}' not found. Available columns: {list(columns)}")

    candidates = [c for c in columns if CODE_PATTERN.search(str(c))]
    if not candidates:
        raise DatasetFileError(
            "Couldn't find the land cover code column (expected a name starting with 'code'). "
            f"Columns: {list(columns)}"
        )
    if len(candidates) > 1:
        raise DatasetFileError(
            f"Several columns look like land cover codes: {candidates}. Pass code_field explicitly."
        )
    return candidates[0]


def make_valid(layer: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Fix invalid geometries and drop the ones that end up empty."""
    out = layer.copy()
    invalid = ~out.geometry.is_valid
    if invalid.any():
        logger.debug(f"Repairing {int(invalid.sum())} invalid geometries")
        out["geometry"] = out.geometry.make_valid()
    out = out[out.geometry.notna() & ~out.geometry.is_empty]
    return out


# -----------------------------------------------------------------------------
# Format detection and file lookup
# -----------------------------------------------------------------------------

def get_data_format(data_folder: Path) -> str:
    """Return 'geopackage' if the folder holds any *.gpkg, else 'shapefile'."""
    if _list_matching(Path(data_folder), GPKG_PATTERN):
        return GEOPACKAGE
    return SHAPEFILE


def find_dataset_file(data_folder: Path, fmt: str) -> Path:
    """Return the single dataset file of format `fmt` under `data_folder`."""
    data_folder = Path(data_folder)
    if fmt == GEOPACKAGE:
        pattern = GPKG_PATTERN
    elif fmt == SHAPEFILE:
        pattern = SHP_PATTERN
    else:
        raise ValueError(f"Unknown dataset format: {fmt!r}")

    matches = _list_matching(data_folder, pattern)
    if not matches:
        raise DatasetFileError(
            f"No {fmt} file matching '{pattern.pattern}' found in {data_folder}"
        )
    if len(matches) > 1:
        names = [str(m.relative_to(data_folder)) for m in matches]
        raise DatasetFileError(
            f"Ambiguous {fmt} dataset in {data_folder}: {len(matches)} files match "
            f"'{pattern.pattern}' ({names}). Keep exactly one per vintage folder."
        )
    return matches[0]


# -----------------------------------------------------------------------------
# Readers
# -----------------------------------------------------------------------------

def _read(path: Path, layer: Optional[str] = None) -> gpd.GeoDataFrame:
    gdf = gpd.read_file(path, layer=layer) if layer else gpd.read_file(path)

    if gdf.crs is None:
        raise DatasetFileError(
            f"{path} has no CRS (.prj missing or unreadable). "
            "Areas and buffer radii are meaningless without one."
        )

    logger.info(f"Loaded {len(gdf)} features from {path.name} ({gdf.crs})")
    return gdf


def read_clc_map_shapefile(data_folder: Path) -> gpd.GeoDataFrame:
    """Open the CLC##_*.shp dataset of a vintage folder."""
    return _read(find_dataset_file(data_folder, SHAPEFILE))


def read_clc_map_gpkg(data_folder: Path, layer: Optional[str] = None) -> gpd.GeoDataFrame:
    """Open the GeoPackage dataset of a vintage folder.

    `layer` selects a layer by name; the default is the file's first layer.
    """
    return _read(find_dataset_file(data_folder, GEOPACKAGE), layer=layer)


def load_vintage(root: Path, year: int) -> gpd.GeoDataFrame:
    """Load the land cover layer stored in `root/<year>`.

    Detects the format from the folder contents and returns the layer as
    read, with its CRS attached. Geometry repair is left to the caller
    (see make_valid).
    """
    year_folder = Path(root) / str(year)
    if not year_folder.is_dir():
        raise DatasetFileError(f"Vintage folder not found: {year_folder}")

    fmt = get_data_format(year_folder)
    logger.debug(f"Vintage {year}: {fmt} in {year_folder}")
    if fmt == SHAPEFILE:
        return read_clc_map_shapefile(year_folder)
    return read_clc_map_gpkg(year_folder)


def standardize_layer(layer: gpd.GeoDataFrame, code_field: Optional[str] = None) -> gpd.GeoDataFrame:
    """Reduce a land cover layer to ['code', 'geometry'] with normalized codes.

    Polygons without a code are dropped. Any other non-numeric code (NODATA,
    1.1.2...) raises DatasetFileError.
    """
    field = pick_code_field(list(layer.columns.drop(layer.geometry.name)), preferred=code_field)
    logger.debug(f"Using code field: {field}")

    out = gpd.GeoDataFrame(
        {CODE_COLUMN: layer[field].map(normalize_code).to_numpy()},
        geometry=layer.geometry.to_numpy(),
        crs=layer.crs,
    )
    missing = out[CODE_COLUMN] == ""
    if missing.any():
        logger.warning(f"Dropping {int(missing.sum())} polygons with no land cover code")
        out = out[~missing]

    bad = sorted(set(c for c in out[CODE_COLUMN] if not CODE_VALUE_PATTERN.fullmatch(c)))
    if bad:
        raise DatasetFileError(
            f"Land cover codes must be numeric (e.g. 211); found {len(bad)} other value(s) "
            f"in '{field}': {bad[:10]}"
        )
    return out
