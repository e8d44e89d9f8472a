#!/usr/bin/env python3
"""clc.compositions

Land cover composition of circular buffers around sampling points.

This module exposes three levels of interface:
1. extract_compositions() - one point table against one land cover layer
2. get_year_compositions() - the points of one vintage, loading that vintage
3. get_full_compositions() - the whole point table, split across vintages

Output tables have one row per point and one column per land cover code
seen in the intersections, holding the fraction of the buffer area covered
by that code. A `buffer_area` column keeps the summed intersected area
(in squared layer CRS units, metres for CORINE's EPSG:3035).

Example:
  >>> from clc.config import set_dataset_path
  >>> config = set_dataset_path("data/raw/clc")
  >>> get_full_compositions(points_df, 250, config, vintage="auto")
"""

from __future__ import annotations

import math
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Union

import geopandas as gpd
import numpy as np
import pandas as pd

from clc.config import ClcConfig
from clc.errors import ClcError, ConfigurationError, DatasetFileError, MissingColumnError
from clc.loader import CODE_COLUMN, load_vintage, make_valid, standardize_layer
from clc.log import get_logger
from clc.vintages import assign_vintages, check_vintage

logger = get_logger(__name__)

WGS84 = "EPSG:4326"

POINT_ID = "point_id"
LONGITUDE = "longitude"
LATITUDE = "latitude"
YEAR = "year"
VINTAGE = "vintage"
BUFFER_AREA = "buffer_area"

REQUIRED_COLUMNS = (POINT_ID, LONGITUDE, LATITUDE)

CATEGORY_PATTERN = re.compile(r"^\d+$")


# -----------------------------------------------------------------------------
# Column helpers
# -----------------------------------------------------------------------------

def category_columns(columns: Iterable) -> List:
    """Columns named by a land cover code (all digits)."""
    return [c for c in columns if CATEGORY_PATTERN.match(str(c))]


def order_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Non-category columns first, then codes in ascending numeric order."""
    codes = category_columns(df.columns)
    others = [c for c in df.columns if c not in codes]
    return df[others + sorted(codes, key=lambda c: (int(str(c)), str(c)))]


def _require_columns(points: pd.DataFrame, required: Sequence[str]) -> None:
    missing = [c for c in required if c not in points.columns]
    if missing:
        raise MissingColumnError(missing)


def _check_unique_ids(points: pd.DataFrame) -> None:
    dupes = points[POINT_ID][points[POINT_ID].duplicated()].unique().tolist()
    if dupes:
        raise ClcError(f"'{POINT_ID}' must be unique; duplicated values: {dupes[:10]}")


def _check_radius(radius_m: float) -> float:
    radius = float(radius_m)
    if not math.isfinite(radius) or radius < 0:
        raise ClcError(f"Buffer radius must be a finite, non-negative number of metres, got {radius_m}")
    return radius


# -----------------------------------------------------------------------------
# Geometry steps
# -----------------------------------------------------------------------------

def _points_to_layer_crs(points: pd.DataFrame, crs, points_crs) -> gpd.GeoDataFrame:
    """Turn lon/lat columns into point geometries expressed in `crs`."""
    geometry = gpd.points_from_xy(points[LONGITUDE], points[LATITUDE], crs=points_crs)
    attrs = points.drop(columns=[LONGITUDE, LATITUDE])
    gdf = gpd.GeoDataFrame(attrs, geometry=geometry)
    return gdf.to_crs(crs)


def _intersect(cover: gpd.GeoDataFrame, buffers: gpd.GeoDataFrame) -> pd.DataFrame:
    """Area of every (buffer, polygon) overlap.

    Candidate pairs come from the layer's spatial index, so only polygons
    actually touching a buffer are intersected. Pairs that merely touch
    (zero-area overlap) are dropped.
    """
    buffer_idx, cover_idx = cover.sindex.query(buffers.geometry.values, predicate="intersects")
    logger.debug(f"  - {len(cover_idx)} buffer/polygon pairs from {len(np.unique(cover_idx))} polygons")

    left = buffers.geometry.iloc[buffer_idx].reset_index(drop=True)
    right = cover.geometry.iloc[cover_idx].reset_index(drop=True)
    pieces = pd.DataFrame({
        POINT_ID: buffers[POINT_ID].to_numpy()[buffer_idx],
        CODE_COLUMN: cover[CODE_COLUMN].to_numpy()[cover_idx],
        "area": left.intersection(right, align=False).area.to_numpy(),
    })
    return pieces[pieces["area"] > 0]


def _area_table(pieces: pd.DataFrame, point_ids: pd.Series) -> pd.DataFrame:
    """Summed intersected area per (point, code), one row per point id.

    Points with no intersection get an all-zero row; codes absent for a point
    are 0, never missing.
    """
    if pieces.empty:
        return pd.DataFrame(index=pd.Index(point_ids, name=POINT_ID))

    table = pieces.groupby([POINT_ID, CODE_COLUMN])["area"].sum().unstack(CODE_COLUMN, fill_value=0.0)
    table = table.reindex(pd.Index(point_ids, name=POINT_ID), fill_value=0.0)
    table.columns = [str(c) for c in table.columns]
    return table.astype(float)


def _normalize(table: pd.DataFrame) -> pd.DataFrame:
    """Divide every code column by the row total, guarding 0/0 as 0."""
    values = table.to_numpy(dtype=float)
    totals = values.sum(axis=1) if values.size else np.zeros(len(table))
    proportions = np.divide(
        values,
        totals[:, None],
        out=np.zeros_like(values),
        where=totals[:, None] > 0,
    )
    out = pd.DataFrame(proportions, index=table.index, columns=table.columns)
    out[BUFFER_AREA] = totals
    return out


# -----------------------------------------------------------------------------
# Core function
# -----------------------------------------------------------------------------

def extract_compositions(
    points: pd.DataFrame,
    layer: gpd.GeoDataFrame,
    radius_m: float,
    points_crs=WGS84,
    *,
    code_field: Optional[str] = None,
) -> pd.DataFrame:
    """Land cover composition of a buffer around each point.

    This is the main workhorse function. It:
    1. Builds point geometries from longitude/latitude in `points_crs`
       and reprojects them into the layer's CRS
    2. Buffers each point by `radius_m` (layer CRS units, metres for CLC)
    3. Intersects buffers with the land cover polygons
    4. Sums intersected area per point and code
    5. Pivots to one column per code and normalizes rows to proportions

    Args:
        points: Table with point_id, longitude, latitude (other columns
            except the coordinates are carried through to the output)
        layer: Land cover polygons with a code column and a CRS
        radius_m: Buffer radius
        points_crs: CRS of the input coordinates (default WGS84)
        code_field: Explicit code column in `layer` (auto-detected if None)

    Returns:
        One row per input point, in input order: the carried point columns,
        one column per observed code (ascending), then buffer_area. Rows of
        buffers touching no polygon are all zero with buffer_area == 0.

    Raises:
        MissingColumnError: If point_id, longitude or latitude is absent.
        ClcError: On duplicate point ids or an unusable layer.
    """
    _require_columns(points, REQUIRED_COLUMNS)
    _check_unique_ids(points)
    radius = _check_radius(radius_m)
    if layer.crs is None:
        raise DatasetFileError("Land cover layer has no CRS")

    cover = standardize_layer(layer, code_field=code_field)

    # --- Transform points ---
    pts = _points_to_layer_crs(points, cover.crs, points_crs)

    # --- Buffers ---
    buffers = gpd.GeoDataFrame(
        {POINT_ID: pts[POINT_ID].to_numpy()},
        geometry=pts.geometry.buffer(radius).to_numpy(),
        crs=cover.crs,
    )
    logger.info(f"Intersecting {len(buffers)} buffers ({radius:g} m) with {len(cover)} polygons")

    # --- Intersect, aggregate, normalize ---
    pieces = _intersect(cover, buffers)
    areas = _area_table(pieces, pts[POINT_ID])
    compositions = _normalize(areas)

    empty = compositions[BUFFER_AREA] <= 0
    if empty.any():
        logger.warning(f"{int(empty.sum())} buffer(s) intersect no land cover polygon; composition left at 0")

    attrs = pd.DataFrame(pts.drop(columns=pts.geometry.name))
    codes = sorted(category_columns(compositions.columns), key=int)
    body = compositions[codes + [BUFFER_AREA]].reset_index(drop=True)
    carried = attrs.reset_index(drop=True)
    # Point attributes named like a code would collide with the pivoted columns
    carried = carried.drop(columns=[c for c in carried.columns if c in body.columns])
    return pd.concat([carried, body], axis=1)


# -----------------------------------------------------------------------------
# Vintage dispatch
# -----------------------------------------------------------------------------

def _select_point_columns(points: pd.DataFrame) -> pd.DataFrame:
    return points[[POINT_ID, LONGITUDE, LATITUDE, VINTAGE]]


def get_year_compositions(
    points: pd.DataFrame,
    year: int,
    radius_m: float,
    config: ClcConfig,
    points_crs=WGS84,
    *,
    code_field: Optional[str] = None,
) -> pd.DataFrame:
    """Compositions for the points assigned to vintage `year`.

    Filters `points` on the vintage column, loads that vintage, repairs its
    geometries, then runs extract_compositions().
    """
    _require_columns(points, REQUIRED_COLUMNS + (VINTAGE,))
    subset = points[points[VINTAGE] == year].copy()
    logger.info(f"Vintage {year}: {len(subset)} point(s)")

    layer = make_valid(load_vintage(config.root, year))
    return extract_compositions(subset, layer, radius_m, points_crs, code_field=code_field)


def get_full_compositions(
    points: pd.DataFrame,
    radius_m: float,
    config: ClcConfig,
    vintage: Union[str, int] = "auto",
    points_crs=WGS84,
    *,
    code_field: Optional[str] = None,
    max_workers: int = 1,
) -> pd.DataFrame:
    """Compositions for a whole point table, split by vintage.

    Args:
        points: Table with point_id, longitude, latitude, and `year` when
            vintage == "auto"
        radius_m: Buffer radius in metres
        config: Dataset location from set_dataset_path()
        vintage: "auto" picks, per point, the latest vintage strictly before
            its sampling year (clamped to the earliest). A year applies that
            vintage to every point.
        points_crs: CRS of the input coordinates
        code_field: Explicit code column name in the datasets
        max_workers: Number of vintages processed concurrently

    Returns:
        One row per point in input order: point_id, vintage, buffer_area,
        then every code column seen in any vintage (ascending, 0 where the
        point's vintage didn't produce that code).
    """
    if config is None or not config.available_years:
        raise ConfigurationError("Dataset path not set; call set_dataset_path() first")

    _require_columns(points, REQUIRED_COLUMNS)
    _check_unique_ids(points)
    _check_radius(radius_m)

    df = points.copy()
    if isinstance(vintage, str) and vintage == "auto":
        _require_columns(df, (YEAR,))
        df[VINTAGE] = assign_vintages(df[YEAR], config.available_years)
    else:
        df[VINTAGE] = check_vintage(vintage, config.available_years)
    df = _select_point_columns(df)

    years = list(dict.fromkeys(df[VINTAGE].tolist()))
    logger.info(f"{len(df)} point(s) across vintage(s) {years}")

    def run(year: int) -> pd.DataFrame:
        return get_year_compositions(df, year, radius_m, config, points_crs, code_field=code_field)

    if max_workers and max_workers > 1 and len(years) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            parts = list(pool.map(run, years))
    else:
        parts = [run(y) for y in years]

    return _combine(parts, df[POINT_ID])


def _combine(parts: List[pd.DataFrame], order: pd.Series) -> pd.DataFrame:
    """Stack per-vintage tables, zero-filling codes a vintage didn't produce."""
    if not parts:
        return pd.DataFrame(columns=[POINT_ID, VINTAGE, BUFFER_AREA])
    full = pd.concat(parts, ignore_index=True, sort=False)
    codes = category_columns(full.columns)
    fill: Dict[str, float] = {c: 0.0 for c in codes + [BUFFER_AREA] if c in full.columns}
    full = full.fillna(fill)

    position = pd.Series(np.arange(len(order)), index=order.to_numpy())
    full = full.iloc[np.argsort(position.loc[full[POINT_ID]].to_numpy(), kind="stable")]
    return order_columns(full.reset_index(drop=True))
