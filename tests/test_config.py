#!/usr/bin/env python3

from __future__ import annotations

from pathlib import Path

import pytest

from clc import config as cfg
from clc.errors import ConfigurationError


def test_set_dataset_path_discovers_year_folders(tmp_path):
    for name in ("2018", "2006", "2012", "README", "docs"):
        (tmp_path / name).mkdir()
    (tmp_path / "2000").touch()  # a file, not a folder

    config = cfg.set_dataset_path(tmp_path)

    assert config.root == tmp_path.resolve()
    assert config.available_years == (2006, 2012, 2018)


def test_padded_year_folders_are_not_vintages(tmp_path):
    # 02018 would be listed as 2018 but loaded from root/2018, which is absent
    for name in ("02018", "2012"):
        (tmp_path / name).mkdir()

    assert cfg.set_dataset_path(tmp_path).available_years == (2012,)

    (tmp_path / "2012").rmdir()
    with pytest.raises(ConfigurationError, match="No vintage subfolders"):
        cfg.set_dataset_path(tmp_path)


def test_set_dataset_path_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="not set"):
        cfg.set_dataset_path(None)
    with pytest.raises(ConfigurationError, match="not found"):
        cfg.set_dataset_path(tmp_path / "missing")
    with pytest.raises(ConfigurationError, match="No vintage subfolders"):
        cfg.set_dataset_path(tmp_path)


def test_load_config_merges_defaults(tmp_path):
    path = tmp_path / "clc.yaml"
    path.write_text("dataset_root: data/raw/clc\nbuffer_radius_m: 500\n", encoding="utf-8")

    settings = cfg.load_config(path)

    assert settings["dataset_root"] == Path("data/raw/clc")
    assert settings["buffer_radius_m"] == 500
    assert settings["vintage"] == "auto"
    assert settings["points_crs"] == "EPSG:4326"


def test_load_yaml_is_strict(tmp_path):
    with pytest.raises(ConfigurationError, match="Config not found"):
        cfg.load_yaml(tmp_path / "nope.yaml")

    not_a_mapping = tmp_path / "list.yaml"
    not_a_mapping.write_text("- 2012\n- 2018\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="mapping"):
        cfg.load_yaml(not_a_mapping)

    broken = tmp_path / "broken.yaml"
    broken.write_text("dataset_root: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        cfg.load_yaml(broken)
