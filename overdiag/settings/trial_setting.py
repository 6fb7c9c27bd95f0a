# overdiag/settings/trial_setting.py

import logging

import pandas as pd

from overdiag.cohort import generate_absence
from overdiag.overdiagnosis import generate_overdiag
from overdiag.screening import generate_presence
from overdiag.settings.tabulate import TRIAL_COLUMNS, clinical_by_year, screened_by_year
from overdiag.validation import (
    check_cohort_parameters,
    check_probability,
    check_screen_window,
)

logger = logging.getLogger(__name__)


def _tabulate_arm(tset, arm, sensitivity, attendance, overdiag_rate,
                  sojourn_min, sojourn_max, start, stop, followup_years):
    """
    Screen the shared trial cohort under one arm's test characteristics and
    count clinical, screen and overdiagnosed cases per year.
    """
    aset = generate_presence(
        tset,
        sojourn_min,
        sojourn_max,
        sensitivity,
        attendance,
        start,
        stop,
        followup_years,
    )
    aset = generate_overdiag(aset, overdiag_rate)

    clinical = clinical_by_year(aset)
    screened = screened_by_year(aset)

    # Years with only clinical or only screen diagnoses count 0 for the other
    arm_table = clinical.merge(screened, on="year", how="outer").fillna(0.0)
    arm_table["arm"] = arm
    return arm_table


def trial_setting(
    arm_size=50000,
    onset_rate=0.001,
    sojourn_min=0,
    sojourn_max=6,
    sensitivity=0.5,
    attendance=0.8,
    overdiag_rate=0.25,
    screen_start_year=1,
    screen_stop_year=30,
    followup_years=30,
):
    """
    Annual incidence in the two arms of a screening trial.

    Both arms share one base cohort of arm_size individuals. The control arm
    is the cohort "screened" with zero sensitivity and attendance, so it is
    observed only through clinical presentation. The screen arm is screened
    with the given sensitivity and attendance.

    Returns rows for years 0..followup_years for each arm, with columns
    year, arm, count_clinical, count_screen, count_overdiag.
    """

    # ------------------------------
    # 1. Validate inputs
    # ------------------------------
    arm_size, onset_rate, sojourn_min, sojourn_max, followup_years = check_cohort_parameters(
        arm_size, onset_rate, sojourn_min, sojourn_max, followup_years
    )
    start, stop = check_screen_window(screen_start_year, screen_stop_year, followup_years)
    sensitivity = check_probability(sensitivity, "sensitivity")
    attendance = check_probability(attendance, "attendance")
    overdiag_rate = check_probability(overdiag_rate, "overdiag_rate", upper_inclusive=False)

    # ------------------------------
    # 2. Shared trial cohort
    # ------------------------------
    tset = generate_absence(arm_size, onset_rate, sojourn_min, sojourn_max, followup_years)

    # ------------------------------
    # 3. Control and screen arms
    # ------------------------------
    arms = []
    for arm, arm_sensitivity, arm_attendance in [
        ("control", 0.0, 0.0),
        ("screen", sensitivity, attendance),
    ]:
        arms.append(_tabulate_arm(
            tset, arm, arm_sensitivity, arm_attendance, overdiag_rate,
            sojourn_min, sojourn_max, start, stop, followup_years,
        ))
        logger.debug("Tabulated %s arm", arm)

    # ------------------------------
    # 4. Merge arms over the years of follow-up
    # ------------------------------
    merged = pd.concat(arms, ignore_index=True)
    merged = merged[(merged["year"] >= 0) & (merged["year"] <= followup_years)]
    merged = merged[TRIAL_COLUMNS].sort_values(["arm", "year"])
    return merged.reset_index(drop=True)
