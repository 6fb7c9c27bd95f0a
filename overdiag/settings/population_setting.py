# overdiag/settings/population_setting.py

import logging

import numpy as np
import pandas as pd

from overdiag.cohort import generate_absence
from overdiag.overdiagnosis import generate_overdiag
from overdiag.screening import generate_presence, lead_time
from overdiag.settings.tabulate import SETTING_COLUMNS, clinical_by_year, screened_by_year
from overdiag.validation import (
    check_cohort_parameters,
    check_probability,
    check_screen_window,
)

logger = logging.getLogger(__name__)


def population_setting(
    pop_size=1e5,
    onset_rate=0.001,
    sojourn_min=0,
    sojourn_max=6,
    sensitivity=0.5,
    overdiag_rate=0.25,
    screen_start_year=4,
    screen_stop_year=30,
    followup_years=30,
):
    """
    Annual incidence in a population offered screening with perfect attendance.

    Returns one row per year from 0 to screen_stop_year - 1 with columns
    year, count_clinical, count_screen, count_overdiag. Years before
    screen_start_year carry no screen diagnoses or overdiagnoses.
    """

    # ------------------------------
    # 1. Validate inputs
    # ------------------------------
    pop_size, onset_rate, sojourn_min, sojourn_max, followup_years = check_cohort_parameters(
        pop_size, onset_rate, sojourn_min, sojourn_max, followup_years
    )
    start, stop = check_screen_window(screen_start_year, screen_stop_year, followup_years)
    sensitivity = check_probability(sensitivity, "sensitivity")
    overdiag_rate = check_probability(overdiag_rate, "overdiag_rate", upper_inclusive=False)
    logger.debug("sensitivity: %s, overdiag_rate: %s", sensitivity, overdiag_rate)

    # ------------------------------
    # 2. Onset, screening and overdiagnosis by stratum
    # ------------------------------
    pset = generate_absence(pop_size, onset_rate, sojourn_min, sojourn_max, followup_years)
    pset = generate_presence(
        pset,
        sojourn_min,
        sojourn_max,
        sensitivity,
        1.0,
        start,
        stop,
        followup_years,
    )
    pset = generate_overdiag(pset, overdiag_rate)

    # ------------------------------
    # 3. Collapse sojourn strata into annual counts
    # ------------------------------
    clinical = clinical_by_year(pset)
    screened = screened_by_year(pset)

    if sojourn_min != sojourn_max and overdiag_rate == 0:
        logger.info(
            "sensitivity: %s, lead time: %.2f",
            sensitivity,
            lead_time(sensitivity, sojourn_max),
        )

    # Pre-screening years have no screen diagnoses or overdiagnoses
    if start > 0:
        padding = pd.DataFrame({
            "year": np.arange(0, start),
            "count_screen": 0.0,
            "count_overdiag": 0.0,
        })
        screened = pd.concat([padding, screened], ignore_index=True)

    # An empty window leaves a zero round at screen_stop_year; report 0..stop-1 only
    screened = screened[screened["year"] < stop]

    merged = screened.merge(clinical, on="year", how="inner")
    return merged[SETTING_COLUMNS].sort_values("year").reset_index(drop=True)
