#!/usr/bin/env python3

from __future__ import annotations

import math
import sys
from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Polygon, box

# Ensure we can import from src/ without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

# CORINE's native grid (ETRS89 / LAEA Europe), metres
LAEA = "EPSG:3035"
CENTER = (4_300_000.0, 3_200_000.0)


def sector(center, start_deg, end_deg, radius=2_000.0, steps=200) -> Polygon:
    """Pie slice around `center`, from start_deg to end_deg (counter-clockwise)."""
    cx, cy = center
    ring = [(cx, cy)]
    for i in range(steps + 1):
        t = math.radians(start_deg + (end_deg - start_deg) * i / steps)
        ring.append((cx + radius * math.cos(t), cy + radius * math.sin(t)))
    return Polygon(ring)


def square(center, half_size=5_000.0) -> Polygon:
    cx, cy = center
    return box(cx - half_size, cy - half_size, cx + half_size, cy + half_size)


def make_layer(geoms, codes, code_field="Code_18", crs=LAEA) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame({code_field: list(codes)}, geometry=list(geoms), crs=crs)


def make_points(rows) -> pd.DataFrame:
    """rows: (point_id, x, y[, year]) in LAEA metres."""
    cols = ["point_id", "longitude", "latitude", "year"][: len(rows[0])]
    return pd.DataFrame(rows, columns=cols)


@pytest.fixture
def full_cover_layer():
    """One polygon, code 211, far larger than any test buffer."""
    return make_layer([square(CENTER)], ["211"])


@pytest.fixture
def split_layer():
    """Two pie slices meeting at CENTER: 112 over 60% of the turn, 231 over 40%."""
    return make_layer(
        [sector(CENTER, 0.0, 216.0), sector(CENTER, 216.0, 360.0)],
        ["112", "231"],
    )


@pytest.fixture
def dataset_root(tmp_path):
    """Two vintages around CENTER.

    2012/ is a GeoPackage coded 112 everywhere, 2018/ a CLC18_*.shp coded 231.
    """
    root = tmp_path / "clc"
    (root / "2012").mkdir(parents=True)
    (root / "2018").mkdir(parents=True)
    (root / "notes").mkdir()

    make_layer([square(CENTER)], ["112"], code_field="code_12").to_file(
        root / "2012" / "clc2012_test.gpkg", driver="GPKG"
    )
    make_layer([square(CENTER)], [231], code_field="Code_18").to_file(
        root / "2018" / "CLC18_test.shp", driver="ESRI Shapefile"
    )
    return root
