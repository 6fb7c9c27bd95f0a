# overdiag/settings/multipopulation_setting.py

import logging

import numpy as np
import pandas as pd

from overdiag.errors import InvalidParameter
from overdiag.settings.population_setting import population_setting
from overdiag.settings.tabulate import SETTING_COLUMNS
from overdiag.validation import (
    as_integer,
    check_cohort_parameters,
    check_probability,
    check_real,
    check_screen_window,
)

logger = logging.getLogger(__name__)


def multipopulation_setting(
    pop_size=1e5,
    onset_rate=0.001,
    sojourn_min=0,
    sojourn_max=6,
    sensitivity=0.5,
    overdiag_rate=0.25,
    proportion=(0.05, 0.1, 0.15, 0.15, 0.05, 0.5),
    start_year=(2, 3, 4, 5, 6, 28),
    followup_years=30,
    screen_stop_year=None,
):
    """
    Annual incidence under gradual dissemination of screening.

    The population is split into sub-populations by `proportion`; the i-th
    one starts screening in start_year[i]. Each sub-population is run
    through population_setting and the results are summed by year.

    screen_stop_year defaults to followup_years.
    """
    pop_size, onset_rate, sojourn_min, sojourn_max, followup_years = check_cohort_parameters(
        pop_size, onset_rate, sojourn_min, sojourn_max, followup_years
    )
    if screen_stop_year is None:
        screen_stop_year = followup_years
    sensitivity = check_probability(sensitivity, "sensitivity")
    overdiag_rate = check_probability(overdiag_rate, "overdiag_rate", upper_inclusive=False)

    proportion = [check_real(p, "proportion") for p in proportion]
    start_year = [as_integer(y, "start_year") for y in start_year]
    if len(proportion) != len(start_year):
        raise InvalidParameter(
            f"proportion and start_year differ in length ({len(proportion)} vs {len(start_year)})"
        )
    if not proportion:
        raise InvalidParameter("at least one sub-population is required")
    if any(p <= 0 or p > 1 for p in proportion):
        raise InvalidParameter(f"each proportion must lie in (0, 1], got {proportion}")
    if not np.isclose(sum(proportion), 1.0, rtol=0.0, atol=1e-9):
        raise InvalidParameter(f"proportions must sum to 1, got {sum(proportion)}")
    for year in start_year:
        check_screen_window(year, screen_stop_year, followup_years)
    sub_sizes = [as_integer(p * pop_size, "sub-population size") for p in proportion]
    if any(size <= 0 for size in sub_sizes):
        raise InvalidParameter(
            f"every sub-population needs at least one individual, got sizes {sub_sizes}"
        )

    mpsets = []
    for size, p, year in zip(sub_sizes, proportion, start_year):
        logger.debug("Sub-population of %s starting screening in year %d", p, year)
        mpsets.append(population_setting(
            pop_size=size,
            onset_rate=onset_rate,
            sojourn_min=sojourn_min,
            sojourn_max=sojourn_max,
            sensitivity=sensitivity,
            overdiag_rate=overdiag_rate,
            screen_start_year=year,
            screen_stop_year=screen_stop_year,
            followup_years=followup_years,
        ))

    mpset = pd.concat(mpsets, ignore_index=True)
    mpset = mpset.groupby("year", as_index=False)[SETTING_COLUMNS[1:]].sum()
    return mpset[SETTING_COLUMNS].sort_values("year").reset_index(drop=True)
