"""Tests for overdiag.params: setting parameters from CSV files."""

from pathlib import Path

import pytest

from overdiag.errors import InvalidParameter
from overdiag.params import (
    DEFAULT_PARAMETERS,
    extract_setting_parameters,
    load_all_parameters,
    summarize_setting_parameters,
)
from overdiag.settings.trial_setting import trial_setting

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def test_shipped_parameters_match_defaults():
    params = extract_setting_parameters(DATA_DIR)
    assert params == DEFAULT_PARAMETERS
    assert isinstance(params["population"]["screen_start_year"], int)


def test_load_all_parameters_keys():
    assert set(load_all_parameters(DATA_DIR)) == {"settings", "dissemination"}


def test_dissemination_table_keyed_by_lowercase_stem(tmp_path):
    (tmp_path / "Dissemination.csv").write_text("proportion,start_year\n0.4,3\n0.6,8\n")
    with pytest.warns(UserWarning):
        params = extract_setting_parameters(tmp_path)
    assert params["multipopulation"]["proportion"] == [0.4, 0.6]
    assert params["multipopulation"]["start_year"] == [3, 8]


def test_missing_files_fall_back_to_defaults(tmp_path):
    with pytest.warns(UserWarning):
        params = extract_setting_parameters(tmp_path)
    assert params == DEFAULT_PARAMETERS
    # defaults are copied, not shared
    params["trial"]["arm_size"] = 1
    assert DEFAULT_PARAMETERS["trial"]["arm_size"] == 50000


def test_csv_overrides(tmp_path):
    (tmp_path / "settings.csv").write_text(
        "setting,parameter,value\n"
        "trial,sensitivity,0.8\n"
        "trial,followup_years,20\n"
        "trial,screen_stop_year,15\n"
    )
    (tmp_path / "dissemination.csv").write_text(
        "proportion,start_year\n0.5,3\n0.5,6\n"
    )
    params = extract_setting_parameters(tmp_path)
    assert params["trial"]["sensitivity"] == 0.8
    assert params["trial"]["followup_years"] == 20
    assert params["multipopulation"]["proportion"] == [0.5, 0.5]
    assert params["multipopulation"]["start_year"] == [3, 6]

    tset = trial_setting(**params["trial"])
    assert tset["year"].max() == 20


def test_unknown_parameter_is_rejected(tmp_path):
    (tmp_path / "settings.csv").write_text(
        "setting,parameter,value\ntrial,specificity,0.9\n"
    )
    with pytest.raises(InvalidParameter):
        extract_setting_parameters(tmp_path)


def test_summary():
    summary = summarize_setting_parameters(DEFAULT_PARAMETERS)
    assert summary["num_trial_params"] == 10
    assert summary["num_subpopulations"] == 6
