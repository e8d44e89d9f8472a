#!/usr/bin/env python3
"""clc

Command line interface for CORINE Land Cover buffer compositions.

Subcommands:
- years     → list the vintages found under the dataset root
- extract   → compositions around the points of a CSV file
- aggregate → collapse an existing composition table to level 1 or 2

Settings come from a YAML file (config/clc.yaml by default, see
clc.config.load_config); command-line flags override it.

Design notes:
- Library errors (clc.errors) become SystemExit here, nowhere else
- extract and aggregate support --dry-run for safe exploration

Examples:
  # Which vintages are available?
  python -m clc --dataset-root data/raw/clc years

  # 250 m buffers, vintage picked from each point's sampling year
  python -m clc extract --points data/points.csv --out data/compositions.csv

  # All points against the 2018 vintage, aggregated to level 1
  python -m clc extract --points data/points.csv --out out.parquet \
    --vintage 2018 --level 1

  # Re-express an existing level 3 table at level 2
  python -m clc aggregate --compositions data/compositions.csv --level 2 \
    --out data/compositions_l2.csv
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from clc.compositions import get_full_compositions
from clc.config import DEFAULT_CONFIG_YAML, DEFAULT_SETTINGS, load_config, set_dataset_path
from clc.errors import ClcError
from clc.levels import aggregate_to_level
from clc.log import setup_logging


# -----------------------------------------------------------------------------
# CLI structure
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for clc.

    Structure:
    - Global args: apply to all subcommands (--config, --dataset-root, ...)
    - Subcommands: one per operation (years, extract, aggregate)
    """
    ap = argparse.ArgumentParser(
        prog="clc",
        description="Land cover composition around points from CORINE Land Cover",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # --- Global args ---
    ap.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Settings YAML (default: {DEFAULT_CONFIG_YAML} if it exists)",
    )
    ap.add_argument(
        "--dataset-root",
        type=Path,
        default=None,
        help="Folder with one subfolder per CLC vintage year (overrides config)",
    )
    ap.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    ap.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional file receiving DEBUG-level logs",
    )
    ap.add_argument(
        "--dry-run",
        action="store_true",
        help="Print planned actions without reading datasets or writing files",
    )

    # --- Subcommands ---
    sub = ap.add_subparsers(dest="command", required=True)

    # --- years ---
    sub.add_parser(
        "years",
        help="List available CLC vintages",
    )

    # --- extract ---
    ext = sub.add_parser(
        "extract",
        help="Compute buffer compositions for a points CSV",
        description="""
Compute the land cover composition of a circular buffer around each point.

This command:
1. Reads points (point_id, longitude, latitude, optional year) from CSV
2. Assigns a vintage per point (auto) or uses the given one
3. Loads each vintage and intersects buffers with its polygons
4. Writes one row per point with one proportion column per CLC code
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ext.add_argument("--points", required=True, type=Path, help="Points CSV")
    ext.add_argument("--out", required=True, type=Path, help="Output table (.csv or .parquet)")
    ext.add_argument("--radius", type=float, default=None, help="Buffer radius in metres")
    ext.add_argument(
        "--vintage",
        default=None,
        help="'auto' (per-point from the year column) or a vintage year",
    )
    ext.add_argument("--points-crs", default=None, help="CRS of the point coordinates")
    ext.add_argument("--code-field", default=None, help="Code column in the datasets (auto-detected)")
    ext.add_argument("--level", type=int, choices=[1, 2, 3], default=None, help="CLC level of the output")
    ext.add_argument("--workers", type=int, default=None, help="Vintages processed concurrently")
    ext.add_argument("--overwrite", action="store_true", help="Overwrite an existing output file")

    # --- aggregate ---
    agg = sub.add_parser(
        "aggregate",
        help="Aggregate a composition table to CLC level 1 or 2",
    )
    agg.add_argument("--compositions", required=True, type=Path, help="Level 3 composition CSV")
    agg.add_argument("--level", required=True, type=int, choices=[1, 2], help="Target level")
    agg.add_argument("--out", required=True, type=Path, help="Output table (.csv or .parquet)")
    agg.add_argument("--overwrite", action="store_true", help="Overwrite an existing output file")

    return ap


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _settings(args: argparse.Namespace) -> Dict[str, Any]:
    """YAML settings (if any) with command-line overrides applied."""
    if args.config is not None:
        settings = load_config(args.config)
    elif DEFAULT_CONFIG_YAML.exists():
        settings = load_config(DEFAULT_CONFIG_YAML)
    else:
        settings = dict(DEFAULT_SETTINGS)

    if args.dataset_root is not None:
        settings["dataset_root"] = args.dataset_root
    return settings


def _parse_vintage(value):
    """'auto' stays a string; anything else must be a year."""
    if isinstance(value, str):
        v = value.strip().lower()
        if v == "auto":
            return "auto"
        if not v.isdigit():
            raise SystemExit(f"--vintage must be 'auto' or a year, got {value!r}")
        return int(v)
    return value


def _read_table(path: Path):
    if not path.exists():
        raise SystemExit(f"Input not found: {path}")
    if path.suffix.lower() == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


def _write_table(df, out_path: Path, overwrite: bool) -> None:
    if out_path.exists() and not overwrite:
        raise SystemExit(f"Output exists: {out_path} (use --overwrite)")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if out_path.suffix.lower() == ".parquet":
        # Parquet needs string column names
        df.columns = [str(c) for c in df.columns]
        df.to_parquet(out_path, index=False)
    else:
        df.to_csv(out_path, index=False)
    print(f"Wrote {len(df)} rows -> {out_path}")


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def _handle_years(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """Print the discovered vintages, one per line."""
    config = set_dataset_path(settings.get("dataset_root"))
    print(f"Vintages in {config.root}:")
    for year in config.available_years:
        print(f"  - {year}")
    return 0


def _handle_extract(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """Handle the extract subcommand."""
    radius = args.radius if args.radius is not None else settings["buffer_radius_m"]
    vintage = _parse_vintage(args.vintage if args.vintage is not None else settings["vintage"])
    points_crs = args.points_crs or settings["points_crs"]
    level = args.level if args.level is not None else int(settings["level"])
    workers = args.workers if args.workers is not None else int(settings["max_workers"])
    code_field = args.code_field or settings.get("code_field")

    config = set_dataset_path(settings.get("dataset_root"))

    if args.dry_run:
        print("[dry-run] Would extract compositions:")
        print(f"  Points: {args.points}")
        print(f"  Dataset root: {config.root} (vintages {list(config.available_years)})")
        print(f"  Radius: {radius} m | Vintage: {vintage} | Points CRS: {points_crs}")
        print(f"  Level: {level} | Workers: {workers}")
        print(f"  Output: {args.out}")
        return 0
    if args.out.exists() and not args.overwrite:
        raise SystemExit(f"Output exists: {args.out} (use --overwrite)")

    points = _read_table(args.points)

    df = get_full_compositions(
        points,
        radius,
        config,
        vintage=vintage,
        points_crs=points_crs,
        code_field=code_field,
        max_workers=workers,
    )
    if level in (1, 2):
        df = aggregate_to_level(df, level)

    _write_table(df, args.out, overwrite=args.overwrite)
    return 0


def _handle_aggregate(args: argparse.Namespace, settings: Dict[str, Any]) -> int:
    """Handle the aggregate subcommand."""
    if args.dry_run:
        print("[dry-run] Would aggregate compositions:")
        print(f"  Input: {args.compositions}")
        print(f"  Level: {args.level}")
        print(f"  Output: {args.out}")
        return 0

    df = _read_table(args.compositions)
    _write_table(aggregate_to_level(df, args.level), args.out, overwrite=args.overwrite)
    return 0


# -----------------------------------------------------------------------------
# Main entrypoint
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint for the clc CLI."""
    ap = build_parser()
    args = ap.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    handlers = {
        "years": _handle_years,
        "extract": _handle_extract,
        "aggregate": _handle_aggregate,
    }

    handler = handlers.get(args.command)
    if handler is None:
        raise SystemExit(f"Unknown command: {args.command}")

    try:
        settings = _settings(args)
        return handler(args, settings)
    except ClcError as e:
        raise SystemExit(f"Error: {e}") from e


if __name__ == "__main__":
    raise SystemExit(main())
