"""clc

Land cover composition around sampling points, from CORINE Land Cover.

Typical use:
    from clc import set_dataset_path, get_full_compositions, aggregate_to_level

    config = set_dataset_path("data/raw/clc")
    level3 = get_full_compositions(points_df, 250, config, vintage="auto")
    level1 = aggregate_to_level(level3, 1)

Command line:
    python -m clc --help
"""

from clc.compositions import (
    extract_compositions,
    get_full_compositions,
    get_year_compositions,
)
from clc.config import ClcConfig, set_dataset_path
from clc.errors import (
    ClcError,
    ConfigurationError,
    DatasetFileError,
    InvalidVintageError,
    MissingColumnError,
)
from clc.levels import aggregate_to_level
from clc.loader import load_vintage, read_clc_map_gpkg, read_clc_map_shapefile
from clc.vintages import check_vintage, resolve_vintage

__version__ = "0.1.0"

__all__ = [
    "ClcConfig",
    "ClcError",
    "ConfigurationError",
    "DatasetFileError",
    "InvalidVintageError",
    "MissingColumnError",
    "aggregate_to_level",
    "check_vintage",
    "extract_compositions",
    "get_full_compositions",
    "get_year_compositions",
    "load_vintage",
    "read_clc_map_gpkg",
    "read_clc_map_shapefile",
    "resolve_vintage",
    "set_dataset_path",
]
