# overdiag/params.py

import copy
import logging
import warnings
from pathlib import Path

import pandas as pd

from overdiag.errors import InvalidParameter
from overdiag.validation import as_integer

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = {
    "population": {
        "pop_size": 1e5,
        "onset_rate": 0.001,
        "sojourn_min": 0,
        "sojourn_max": 6,
        "sensitivity": 0.5,
        "overdiag_rate": 0.25,
        "screen_start_year": 4,
        "screen_stop_year": 30,
        "followup_years": 30,
    },
    "trial": {
        "arm_size": 50000,
        "onset_rate": 0.001,
        "sojourn_min": 0,
        "sojourn_max": 6,
        "sensitivity": 0.5,
        "attendance": 0.8,
        "overdiag_rate": 0.25,
        "screen_start_year": 1,
        "screen_stop_year": 30,
        "followup_years": 30,
    },
    "multipopulation": {
        "pop_size": 1e5,
        "onset_rate": 0.001,
        "sojourn_min": 0,
        "sojourn_max": 6,
        "sensitivity": 0.5,
        "overdiag_rate": 0.25,
        "proportion": [0.05, 0.1, 0.15, 0.15, 0.05, 0.5],
        "start_year": [2, 3, 4, 5, 6, 28],
        "followup_years": 30,
    },
}

YEAR_PARAMETERS = {
    "sojourn_min",
    "sojourn_max",
    "screen_start_year",
    "screen_stop_year",
    "followup_years",
}


def load_all_parameters(directory="data"):
    """
    Read the scenario tables in `directory`, keyed by lower-cased file stem:
    "settings" for the per-setting overrides and "dissemination" for the
    screening schedule of the multipopulation setting. Other CSV files are
    returned too but ignored by extract_setting_parameters.
    """
    tables = {}
    for path in sorted(Path(directory).glob("*.csv")):
        try:
            tables[path.stem.lower()] = pd.read_csv(path)
        except (OSError, pd.errors.ParserError) as err:
            raise RuntimeError(f"Cannot read scenario table {path}: {err}") from err
    logger.debug("Scenario tables in %s: %s", directory, sorted(tables))
    return tables


def extract_setting_parameters(directory="data"):
    """
    Keyword arguments for population_setting, trial_setting and
    multipopulation_setting, keyed by setting name.

      - settings.csv (setting, parameter, value) overrides scalar defaults
      - dissemination.csv (proportion, start_year) gives the sub-populations
        of the multipopulation setting

    Missing files fall back to DEFAULT_PARAMETERS with a warning.
    """
    csv_files = load_all_parameters(directory)
    params = copy.deepcopy(DEFAULT_PARAMETERS)

    # --- 1. Scalar parameters per setting ---
    if "settings" in csv_files:
        df = csv_files["settings"]
        if not {"setting", "parameter", "value"}.issubset(df.columns):
            raise InvalidParameter("settings.csv needs setting, parameter and value columns")
        for row in df.itertuples(index=False):
            if row.setting not in params:
                raise InvalidParameter(f"unknown setting {row.setting!r} in settings.csv")
            if row.parameter not in params[row.setting]:
                raise InvalidParameter(
                    f"unknown parameter {row.parameter!r} for setting {row.setting!r}"
                )
            value = float(row.value)
            if row.parameter in YEAR_PARAMETERS:
                value = as_integer(value, row.parameter)
            params[row.setting][row.parameter] = value
    else:
        warnings.warn(f"No settings.csv in {directory}. Using default setting parameters.")

    # --- 2. Dissemination schedule ---
    if "dissemination" in csv_files:
        df = csv_files["dissemination"]
        if not {"proportion", "start_year"}.issubset(df.columns):
            raise InvalidParameter("dissemination.csv needs proportion and start_year columns")
        params["multipopulation"]["proportion"] = df["proportion"].astype(float).tolist()
        params["multipopulation"]["start_year"] = df["start_year"].astype(int).tolist()
    else:
        warnings.warn(f"No dissemination.csv in {directory}. Using default dissemination.")

    logger.info("Extracted parameter groups: %s", list(params.keys()))
    return params


def summarize_setting_parameters(params):
    """
    Summarize the extracted setting parameters.
    """

    summary = {
        "num_population_params": len(params.get("population", {})),
        "num_trial_params": len(params.get("trial", {})),
        "num_multipopulation_params": len(params.get("multipopulation", {})),
        "num_subpopulations": len(params.get("multipopulation", {}).get("proportion", [])),
    }

    logger.info("Parameter summary:")
    for k, v in summary.items():
        logger.info("  %s: %s", k, v)

    return summary
