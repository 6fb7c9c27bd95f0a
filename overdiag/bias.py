# overdiag/bias.py

import logging
from typing import Optional

import numpy as np
import pandas as pd

from overdiag.errors import InvalidParameter
from overdiag.settings.tabulate import SETTING_COLUMNS
from overdiag.validation import as_integer

logger = logging.getLogger(__name__)

TRIAL_RELATIVE = "trial-relative"
BASELINE_RELATIVE = "baseline-relative"
POLICIES = (TRIAL_RELATIVE, BASELINE_RELATIVE)

MEASURES = ("Annual", "Cumulative")

# |excess overdiagnosis / excess incidence - 1| below this counts as a match
TOLERANCE = 1e-6

COUNT_COLUMNS = [
    "count_clinical",
    "count_screen",
    "count_overdiag",
    "count_nonoverdiag",
    "count_total",
]


def _resolve_policy(dset, policy):
    if policy is None:
        return TRIAL_RELATIVE if "arm" in dset.columns else BASELINE_RELATIVE
    if policy not in POLICIES:
        raise InvalidParameter(f"unknown policy {policy!r}; expected one of {POLICIES}")
    if policy == TRIAL_RELATIVE and "arm" not in dset.columns:
        raise InvalidParameter("trial-relative policy needs an arm column")
    if policy == BASELINE_RELATIVE and "arm" in dset.columns:
        raise InvalidParameter("baseline-relative policy applies to single-arm tables")
    return policy


def _resolve_measure(measure):
    if measure not in MEASURES:
        raise InvalidParameter(f"unknown measure {measure!r}; expected one of {MEASURES}")
    return measure


def incidence_measures(dset, min_year=None, max_year=None):
    """
    Stack annual and cumulative incidence for a setting result.

    Rows outside [min_year, max_year] are dropped first, then
    count_nonoverdiag (clinical + screen) and count_total (all diagnoses)
    are added. The cumulative rows hold running sums in year order, per arm
    for trial results. A `measure` column tells the two framings apart.
    """
    missing = [c for c in SETTING_COLUMNS if c not in dset.columns]
    if missing:
        raise InvalidParameter(f"incidence table is missing columns {missing}")

    if min_year is not None:
        dset = dset[dset["year"] >= as_integer(min_year, "min_year")]
    if max_year is not None:
        dset = dset[dset["year"] <= as_integer(max_year, "max_year")]

    keys = ["arm"] if "arm" in dset.columns else []
    dset = dset.sort_values(keys + ["year"]).reset_index(drop=True)
    dset = dset.assign(count_nonoverdiag=dset["count_clinical"] + dset["count_screen"])
    dset = dset.assign(count_total=dset["count_nonoverdiag"] + dset["count_overdiag"])

    annual = dset.assign(measure="Annual")
    cumulative = dset.assign(measure="Cumulative")
    if keys:
        cumulative[COUNT_COLUMNS] = cumulative.groupby("arm")[COUNT_COLUMNS].cumsum()
    else:
        cumulative[COUNT_COLUMNS] = cumulative[COUNT_COLUMNS].cumsum()

    return pd.concat([annual, cumulative], ignore_index=True)


def _trial_relative(measured):
    """Excess of the screen arm over the control arm, per year."""
    screen = measured[measured["arm"] == "screen"].set_index("year")
    control = measured[measured["arm"] == "control"].set_index("year")
    if not screen.index.equals(control.index):
        raise InvalidParameter("screen and control arms must cover the same years")

    excess_overdiag = screen["count_overdiag"] - control["count_overdiag"]
    excess_total = screen["count_total"] - control["count_total"]

    # A screened control arm contaminates the comparison in every year
    if (control["count_screen"] > 0).any():
        valid = np.zeros(len(screen), dtype=bool)
    else:
        valid = (screen["count_screen"] > 0).to_numpy()

    return (
        screen.index.to_numpy(),
        excess_overdiag.to_numpy(),
        excess_total.to_numpy(),
        valid,
    )


def _baseline_relative(measured, baseline, measure):
    """Excess over the pre-screening clinical incidence at year 0, per year."""
    reference = np.full(len(measured), baseline)
    if measure == "Cumulative":
        reference = np.cumsum(reference)

    excess_total = measured["count_total"].to_numpy() - reference
    valid = (measured["count_screen"] > 0).to_numpy()
    return (
        measured["year"].to_numpy(),
        measured["count_overdiag"].to_numpy(),
        excess_total,
        valid,
    )


def _exact_years(measures, policy, measure):
    measured = measures[measures["measure"] == measure]

    if policy == TRIAL_RELATIVE:
        years, excess_overdiag, excess_total, valid = _trial_relative(measured)
    else:
        year_zero = measures[(measures["measure"] == "Annual") & (measures["year"] == 0)]
        if year_zero.empty:
            raise InvalidParameter("baseline-relative policy needs year 0 in the table")
        baseline = float(year_zero["count_clinical"].iloc[0])
        years, excess_overdiag, excess_total, valid = _baseline_relative(
            measured, baseline, measure
        )

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = excess_overdiag / excess_total
    exact = valid & (np.abs(ratio - 1.0) < TOLERANCE)
    return years[exact]


def find_unbiased_year(dset, policy=None, measure="Annual",
                       min_year=None, max_year=None) -> Optional[int]:
    """
    First year in which empirical excess incidence equals true overdiagnosis.

    Only years with screen diagnoses count (for the trial-relative policy,
    no year counts if the control arm was screened). Returns None when no
    year matches within TOLERANCE.
    """
    policy = _resolve_policy(dset, policy)
    measure = _resolve_measure(measure)
    measures = incidence_measures(dset, min_year=min_year, max_year=max_year)

    years = _exact_years(measures, policy, measure)
    if len(years) == 0:
        logger.info("%s %s: no unbiased year found", policy, measure.lower())
        return None
    unbiased_year = int(years.min())
    logger.info("%s %s: unbiased from year %d", policy, measure.lower(), unbiased_year)
    return unbiased_year


def analyze_bias(dset, policy=None, min_year=None, max_year=None):
    """
    Annual and cumulative incidence with the unbiased year of each framing.

    Returns (table, summary):
      - table: incidence_measures output plus a boolean `exact` column
        marking the unbiased year (on the screen arm for trial results)
      - summary: {"policy": ..., "Annual": year or None, "Cumulative": year or None}
    """
    policy = _resolve_policy(dset, policy)
    table = incidence_measures(dset, min_year=min_year, max_year=max_year)
    table["exact"] = False

    summary = {"policy": policy}
    for measure in MEASURES:
        unbiased_year = find_unbiased_year(
            dset, policy=policy, measure=measure, min_year=min_year, max_year=max_year
        )
        summary[measure] = unbiased_year
        if unbiased_year is None:
            continue
        flag = (table["measure"] == measure) & (table["year"] == unbiased_year)
        if policy == TRIAL_RELATIVE:
            flag &= table["arm"] == "screen"
        table.loc[flag, "exact"] = True

    return table, summary
