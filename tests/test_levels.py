#!/usr/bin/env python3

from __future__ import annotations

import pandas as pd
import pytest

from clc.levels import aggregate_to_level


@pytest.fixture
def level3():
    return pd.DataFrame({
        "point_id": ["a", "b", "c"],
        "vintage": [2012, 2018, 2018],
        "buffer_area": [196_000.0, 196_000.0, 0.0],
        "111": [0.1, 0.0, 0.0],
        "112": [0.2, 0.5, 0.0],
        "211": [0.3, 0.0, 0.0],
        "231": [0.4, 0.25, 0.0],
        "512": [0.0, 0.25, 0.0],
    })


def test_level_1(level3):
    out = aggregate_to_level(level3, 1)
    assert list(out.columns) == ["point_id", "vintage", "buffer_area", "1", "2", "5"]
    assert out["1"].tolist() == pytest.approx([0.3, 0.5, 0.0])
    assert out["2"].tolist() == pytest.approx([0.7, 0.25, 0.0])
    assert out["5"].tolist() == pytest.approx([0.0, 0.25, 0.0])


def test_level_2(level3):
    out = aggregate_to_level(level3, 2)
    assert list(out.columns) == ["point_id", "vintage", "buffer_area", "11", "21", "23", "51"]
    assert out["11"].tolist() == pytest.approx([0.3, 0.5, 0.0])


def test_aggregation_conserves_row_sums(level3):
    codes3 = ["111", "112", "211", "231", "512"]
    for level in (1, 2):
        out = aggregate_to_level(level3, level)
        codes = [c for c in out.columns if c.isdigit()]
        assert out[codes].sum(axis=1).tolist() == pytest.approx(level3[codes3].sum(axis=1).tolist())


def test_non_category_columns_pass_through(level3):
    out = aggregate_to_level(level3, 1)
    pd.testing.assert_frame_equal(out[["point_id", "vintage", "buffer_area"]], level3[["point_id", "vintage", "buffer_area"]])


def test_level_1_is_idempotent(level3):
    once = aggregate_to_level(level3, 1)
    twice = aggregate_to_level(once, 1)
    pd.testing.assert_frame_equal(once, twice)


def test_level_2_then_1_equals_direct_level_1(level3):
    pd.testing.assert_frame_equal(
        aggregate_to_level(aggregate_to_level(level3, 2), 1),
        aggregate_to_level(level3, 1),
    )


def test_invalid_level(level3):
    for bad in (0, 3, "1", True):
        with pytest.raises(ValueError):
            aggregate_to_level(level3, bad)
