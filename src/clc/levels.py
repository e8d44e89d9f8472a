#!/usr/bin/env python3
"""clc.levels

Collapse CORINE Land Cover composition columns to a coarser level.

CLC codes are hierarchical: 112 (discontinuous urban fabric) belongs to
11 (urban fabric), which belongs to 1 (artificial surfaces). Aggregating to
level 1 or 2 sums the level 3 proportions sharing the same leading digits.
Sums stay sums, so rows that added up to 1 still add up to 1.
"""

from __future__ import annotations

from typing import Dict, List

import pandas as pd

from clc.compositions import category_columns

LEVELS = (1, 2)


def _coarse_code(code: str, level: int) -> str:
    return code[:level]


def aggregate_to_level(level3_table: pd.DataFrame, level: int) -> pd.DataFrame:
    """Re-express composition columns at CLC level 1 or 2.

    Code columns longer than `level` digits are grouped by their first
    `level` digits and summed row-wise into one column named by that prefix
    (112, 121 and 142 at level 1 -> "1"). Other columns pass through
    unchanged and come first; the aggregated columns follow in ascending
    order. A table already at (or coarser than) `level` is returned as a
    copy, unchanged.
    """
    if isinstance(level, bool) or level not in LEVELS:
        raise ValueError(f"level must be one of {LEVELS}, got {level!r}")

    codes = [c for c in category_columns(level3_table.columns) if len(str(c)) > level]
    if not codes:
        return level3_table.copy()

    groups: Dict[str, List] = {}
    for c in codes:
        groups.setdefault(_coarse_code(str(c), level), []).append(c)

    passthrough = level3_table.drop(columns=codes)
    aggregated = {}
    for coarse in sorted(groups, key=int):
        cols = groups[coarse]
        # Fold in a column already named by the coarse code, if any
        if coarse in passthrough.columns:
            cols = cols + [coarse]
            passthrough = passthrough.drop(columns=[coarse])
        aggregated[coarse] = level3_table[cols].sum(axis=1)

    return pd.concat([passthrough, pd.DataFrame(aggregated, index=level3_table.index)], axis=1)
