#!/usr/bin/env python3
"""clc.vintages

Pick which CORINE Land Cover vintage to use for a sampling year.

The rule: use the latest vintage strictly older than the sampling year.
With 2012 and 2018 available, samples from 2013-2018 use 2012 and samples
from 2019 on use 2018. Samples that predate every vintage (or fall on the
first one) are clamped to the earliest vintage instead of failing.
"""

from __future__ import annotations

import numbers
from typing import Iterable, List, Sequence

from clc.errors import ConfigurationError, InvalidVintageError


def resolve_vintage(sampling_year: int, available_years: Iterable[int]) -> int:
    """Return the vintage to use for `sampling_year`."""
    years = list(available_years)
    if not years:
        raise ConfigurationError(
            "No available vintages; call set_dataset_path() on a folder with year subfolders first."
        )
    past = [y for y in years if y < sampling_year]
    if past:
        return max(past)
    return min(years)


def _as_year(value) -> int:
    """Coerce a scalar to an int year, or raise InvalidVintageError."""
    # bool is an Integral too, but True is never a year
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidVintageError(f"Invalid vintage {value!r}: expected a single numeric year")
    if isinstance(value, numbers.Integral):
        return int(value)
    if float(value).is_integer():
        return int(value)
    raise InvalidVintageError(f"Invalid vintage {value!r}: expected a whole year")


def check_vintage(year, available_years: Sequence[int]) -> int:
    """Validate a caller-requested vintage and return it as an int.

    Fails unless `year` is a single number present in `available_years`.
    """
    value = _as_year(year)
    if value not in set(available_years):
        raise InvalidVintageError(
            f"Invalid vintage {value}: available vintages are {sorted(available_years)}"
        )
    return value


def assign_vintages(sampling_years: Iterable, available_years: Sequence[int]) -> List[int]:
    """resolve_vintage() over a column of sampling years."""
    resolved = []
    for y in sampling_years:
        if y is None or (isinstance(y, float) and y != y):
            raise InvalidVintageError("Missing sampling year; 'auto' vintage selection needs a year for every point")
        resolved.append(resolve_vintage(_as_year(y), available_years))
    return resolved
