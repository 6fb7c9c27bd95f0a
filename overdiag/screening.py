# overdiag/screening.py

import logging

import numpy as np
import pandas as pd

from overdiag.errors import InvalidParameter, InvariantViolation
from overdiag.validation import (
    as_integer,
    check_probability,
    check_screen_window,
    check_sojourn_range,
)

logger = logging.getLogger(__name__)


def miss_probability(sensitivity: float, attendance: float) -> float:
    """
    Probability that one screening round fails to detect a latent case:
    either the individual does not attend, or attends and the test is
    a false negative.
    """
    return attendance * (1.0 - sensitivity) + (1.0 - attendance)


def _single_sojourn(dset):
    values = dset["sojourn"].unique()
    if len(values) != 1:
        raise InvalidParameter(
            f"expected a single sojourn stratum, got {len(values)} sojourn values"
        )
    return int(values[0])


def calculate_clinical(dset, sensitivity, attendance, screen_start_year, screen_stop_year):
    """
    Append the number of screening tests offered and the number of cases
    that still present clinically in the presence of screening.

    Tests offered are bounded by the later of onset and screen start, and by
    the earlier of clinical presentation and screen stop. A case presents
    clinically only when every test offered during its preclinical window
    misses it.

    `dset` must hold one sojourn stratum of a generate_absence table.
    """
    _single_sojourn(dset)
    start, stop = check_screen_window(screen_start_year, screen_stop_year)
    sensitivity = check_probability(sensitivity, "sensitivity")
    attendance = check_probability(attendance, "attendance")
    miss = miss_probability(sensitivity, attendance)

    dset = dset.copy()
    lower_year = np.maximum(start, dset["onset_year"].to_numpy())
    upper_year = np.minimum(stop, dset["clinical_year"].to_numpy())
    dset["tests_offered"] = np.maximum(upper_year - lower_year, 0)
    dset["count_clinical"] = dset["count_onset"] * np.power(
        miss, dset["tests_offered"].to_numpy(dtype=float)
    )
    return dset


def calculate_screen(dset, sensitivity, attendance, screen_start_year, screen_stop_year):
    """
    Count screen-detected cases in each screening round for one sojourn stratum.

    A case with onset in one of the `sojourn` years up to and including a
    round is latent at that round. It is detected there with probability
    sensitivity * attendance * miss ** k, where k is the number of earlier
    rounds it survived: its years since onset, capped by the tests it was
    offered and by the rounds held so far.

    `dset` must be the output of calculate_clinical. The result is in long
    form, one row per (onset_year, screen_year), with a count_screen column.
    Raises InvariantViolation if clinical plus screen counts do not
    reproduce count_onset for every row.
    """
    sojourn_time = _single_sojourn(dset)
    start, stop = check_screen_window(screen_start_year, screen_stop_year)
    sensitivity = check_probability(sensitivity, "sensitivity")
    attendance = check_probability(attendance, "attendance")
    if "tests_offered" not in dset.columns or "count_clinical" not in dset.columns:
        raise InvalidParameter("calculate_screen expects the output of calculate_clinical")
    miss = miss_probability(sensitivity, attendance)

    onset_year = dset["onset_year"].to_numpy()
    tests_offered = dset["tests_offered"].to_numpy()
    count_onset = dset["count_onset"].to_numpy()

    screen_years = list(range(start, stop))
    rounds = []
    for screen_year in screen_years:
        count_screen = np.zeros(len(dset))
        if sojourn_time > 0:
            latent_time = screen_year - onset_year
            latent = (latent_time >= 0) & (latent_time < sojourn_time)
            # earlier rounds survived, capped by tests offered and rounds held
            survived = np.minimum(latent_time, tests_offered - 1)
            survived = np.minimum(survived, screen_year - start)
            survived = np.maximum(survived, 0)
            prob_detect = sensitivity * attendance * np.power(miss, survived.astype(float))
            count_screen = np.where(latent, prob_detect * count_onset, 0.0)
        rounds.append(count_screen)

    if not screen_years:
        # no rounds held: keep each stratum with an empty round at screen start
        screen_years = [start]
        rounds = [np.zeros(len(dset))]

    diag_counts = dset["count_clinical"].to_numpy() + np.sum(rounds, axis=0)
    if not np.allclose(diag_counts, count_onset, rtol=1e-9, atol=1e-9):
        worst = float(np.max(np.abs(diag_counts - count_onset)))
        raise InvariantViolation(
            f"sojourn {sojourn_time}: clinical + screen counts differ from onset "
            f"counts by up to {worst:.3e}"
        )

    melted = pd.concat(
        [
            dset.assign(screen_year=screen_year, count_screen=count_screen)
            for screen_year, count_screen in zip(screen_years, rounds)
        ],
        ignore_index=True,
    )
    logger.debug(
        "Sojourn %d: %d strata x %d screening rounds", sojourn_time, len(dset), len(rounds)
    )
    return melted


def generate_presence(
    dset,
    sojourn_min,
    sojourn_max,
    sensitivity,
    attendance,
    screen_start_year,
    screen_stop_year,
    followup_years,
):
    """
    Simulate incidence in the presence of screening.

    Applies calculate_clinical and calculate_screen to each sojourn stratum
    of a generate_absence table and stacks the results. Strata are
    independent, so they are processed one at a time and concatenated.
    """
    followup_years = as_integer(followup_years, "followup_years")
    start, stop = check_screen_window(screen_start_year, screen_stop_year, followup_years)
    check_sojourn_range(sojourn_min, sojourn_max)
    sensitivity = check_probability(sensitivity, "sensitivity")
    attendance = check_probability(attendance, "attendance")

    screened = []
    for _, stratum in dset.groupby("sojourn", sort=True):
        stratum = calculate_clinical(stratum, sensitivity, attendance, start, stop)
        screened.append(calculate_screen(stratum, sensitivity, attendance, start, stop))

    pset = pd.concat(screened, ignore_index=True)
    return pset.drop(columns="tests_offered")


def lead_time(sensitivity, sojourn_max):
    """
    Mean lead time under annual screening with the given test sensitivity,
    as reported alongside the population setting.
    """
    sensitivity = check_probability(sensitivity, "sensitivity")
    sojourn_max = as_integer(sojourn_max, "sojourn_max")
    return float(sum(
        sensitivity * (1.0 - sensitivity) ** (sojourn_max - x - 1) * x
        for x in range(1, sojourn_max)
    ))
