# overdiag/cohort.py

import logging

import numpy as np
import pandas as pd

from overdiag.validation import check_cohort_parameters

logger = logging.getLogger(__name__)

COHORT_COLUMNS = ["onset_year", "sojourn", "count_onset", "clinical_year"]


def generate_absence(pop_size, onset_rate, sojourn_min, sojourn_max, followup_years):
    """
    Simulate incidence in the absence of screening.

    Builds the stratified onset table: one row per (onset_year, sojourn)
    holding the expected number of cases that start their preclinical phase
    in that year and stay preclinical for `sojourn` years.

      - onset years run from -sojourn_max to followup_years, each with
        pop_size * onset_rate expected cases
      - sojourn_max trailing years with no onset are appended so that the
        table covers every clinical year a case could reach
      - each year's count is split evenly over sojourn_min..sojourn_max

    Returns a DataFrame with columns onset_year, sojourn, count_onset,
    clinical_year (= onset_year + sojourn).
    """

    # ------------------------------
    # 1. Validate inputs
    # ------------------------------
    pop_size, onset_rate, sojourn_min, sojourn_max, followup_years = check_cohort_parameters(
        pop_size, onset_rate, sojourn_min, sojourn_max, followup_years
    )

    # ------------------------------
    # 2. Uniform sojourn-time distribution
    # ------------------------------
    sojourn_time = np.arange(sojourn_min, sojourn_max + 1)
    probabilities = np.full(len(sojourn_time), 1.0 / len(sojourn_time))

    # ------------------------------
    # 3. Expected onset per year, with empty tail years
    # ------------------------------
    onset_year = np.arange(-sojourn_max, followup_years + 1)
    count_year = np.full(len(onset_year), pop_size * onset_rate, dtype=float)
    if sojourn_max > 0:
        tail = followup_years + np.arange(1, sojourn_max + 1)
        onset_year = np.concatenate([onset_year, tail])
        count_year = np.concatenate([count_year, np.zeros(len(tail))])

    # Expand each onset year across the sojourn strata
    n_sojourn = len(sojourn_time)
    pset = pd.DataFrame({
        "onset_year": np.repeat(onset_year, n_sojourn),
        "sojourn": np.tile(sojourn_time, len(onset_year)),
        "count_onset": np.outer(count_year, probabilities).ravel(),
    })
    pset["clinical_year"] = pset["onset_year"] + pset["sojourn"]

    logger.debug(
        "Generated %d onset years x %d sojourn strata", len(onset_year), n_sojourn
    )
    return pset[COHORT_COLUMNS]
