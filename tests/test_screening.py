"""Tests for overdiag.screening: incidence in the presence of screening."""

import numpy as np
import pandas as pd
import pytest

from overdiag.cohort import generate_absence
from overdiag.errors import InvalidParameter, InvariantViolation
from overdiag.screening import (
    calculate_clinical,
    calculate_screen,
    generate_presence,
    lead_time,
    miss_probability,
)

FOLLOWUP_YEARS = 10
SENSITIVITY = 0.5
ATTENDANCE = 0.8
SCREEN_START_YEAR = 2
SCREEN_STOP_YEAR = 8


@pytest.fixture
def cohort():
    return generate_absence(1000, 0.001, 0, 6, FOLLOWUP_YEARS)


@pytest.fixture
def pset(cohort):
    return generate_presence(
        cohort, 0, 6, SENSITIVITY, ATTENDANCE,
        SCREEN_START_YEAR, SCREEN_STOP_YEAR, FOLLOWUP_YEARS,
    )


def _stratum(cohort, sojourn):
    return cohort[cohort["sojourn"] == sojourn]


def _per_stratum(pset):
    return pset.groupby(["onset_year", "sojourn"]).agg(
        count_onset=("count_onset", "first"),
        count_clinical=("count_clinical", "first"),
        count_screen=("count_screen", "sum"),
    )


# ═══════════════════════════════════════════════════════════════════════
# calculate_clinical
# ═══════════════════════════════════════════════════════════════════════

def test_number_of_tests_offered_is_sane(cohort):
    cset = pd.concat([
        calculate_clinical(stratum, SENSITIVITY, ATTENDANCE, SCREEN_START_YEAR, SCREEN_STOP_YEAR)
        for _, stratum in cohort.groupby("sojourn")
    ])
    assert cset["tests_offered"].max() <= 6
    assert cset["tests_offered"].max() <= FOLLOWUP_YEARS
    assert cset["tests_offered"].min() == 0


def test_tests_offered_bounded_by_window(cohort):
    cset = calculate_clinical(
        _stratum(cohort, 3), SENSITIVITY, ATTENDANCE, SCREEN_START_YEAR, SCREEN_STOP_YEAR
    ).set_index("onset_year")
    assert cset.loc[0, "tests_offered"] == 1
    assert cset.loc[5, "tests_offered"] == 3
    assert cset.loc[7, "tests_offered"] == 1
    assert cset.loc[9, "tests_offered"] == 0

    miss = miss_probability(SENSITIVITY, ATTENDANCE)
    assert miss == pytest.approx(0.6)
    assert cset.loc[5, "count_clinical"] == pytest.approx(cset.loc[5, "count_onset"] * 0.6 ** 3)
    assert cset.loc[9, "count_clinical"] == cset.loc[9, "count_onset"]


def test_clinical_requires_single_sojourn(cohort):
    with pytest.raises(InvalidParameter):
        calculate_clinical(cohort, SENSITIVITY, ATTENDANCE, SCREEN_START_YEAR, SCREEN_STOP_YEAR)


def test_clinical_does_not_modify_input(cohort):
    stratum = _stratum(cohort, 2)
    calculate_clinical(stratum, SENSITIVITY, ATTENDANCE, SCREEN_START_YEAR, SCREEN_STOP_YEAR)
    assert "count_clinical" not in stratum.columns


# ═══════════════════════════════════════════════════════════════════════
# calculate_screen
# ═══════════════════════════════════════════════════════════════════════

def test_detection_by_round():
    stratum = generate_absence(1000, 0.001, 2, 2, FOLLOWUP_YEARS)
    cset = calculate_clinical(stratum, 0.5, 1.0, 0, 10)
    sset = calculate_screen(cset, 0.5, 1.0, 0, 10)

    onset_3 = sset[sset["onset_year"] == 3].set_index("screen_year")["count_screen"]
    assert onset_3[3] == pytest.approx(0.5)
    assert onset_3[4] == pytest.approx(0.25)
    assert onset_3.drop([3, 4]).sum() == 0
    assert cset.set_index("onset_year").loc[3, "count_clinical"] == pytest.approx(0.25)

    # Onset before screening starts: only one round falls in the preclinical window
    onset_before = sset[sset["onset_year"] == -1].set_index("screen_year")["count_screen"]
    assert onset_before[0] == pytest.approx(0.5)
    assert onset_before.drop(0).sum() == 0


def test_zero_sojourn_is_never_screen_detected(cohort):
    cset = calculate_clinical(_stratum(cohort, 0), SENSITIVITY, ATTENDANCE, 2, 8)
    sset = calculate_screen(cset, SENSITIVITY, ATTENDANCE, 2, 8)
    assert (sset["count_screen"] == 0).all()
    assert (sset["count_clinical"] == sset["count_onset"]).all()


def test_screen_requires_clinical_counts(cohort):
    with pytest.raises(InvalidParameter):
        calculate_screen(_stratum(cohort, 3), SENSITIVITY, ATTENDANCE, 2, 8)


def test_inconsistent_clinical_counts_violate_conservation(cohort):
    cset = calculate_clinical(_stratum(cohort, 3), SENSITIVITY, ATTENDANCE, 2, 8)
    cset = cset.assign(count_clinical=cset["count_onset"])
    with pytest.raises(InvariantViolation):
        calculate_screen(cset, SENSITIVITY, ATTENDANCE, 2, 8)


# ═══════════════════════════════════════════════════════════════════════
# generate_presence
# ═══════════════════════════════════════════════════════════════════════

def test_sojourn_times_have_correct_range(pset):
    assert sorted(pset["sojourn"].unique()) == list(range(0, 7))


def test_years_of_onset_have_correct_range(pset):
    assert sorted(pset["onset_year"].unique()) == list(range(-6, FOLLOWUP_YEARS + 7))


def test_data_frame_has_correct_number_of_rows(pset):
    n_screen = SCREEN_STOP_YEAR - SCREEN_START_YEAR
    assert len(pset) == 7 * 23 * n_screen
    assert sorted(pset["screen_year"].unique()) == list(range(SCREEN_START_YEAR, SCREEN_STOP_YEAR))
    assert "tests_offered" not in pset.columns


def test_every_onset_case_is_diagnosed_once(pset):
    per_stratum = _per_stratum(pset)
    np.testing.assert_allclose(
        per_stratum["count_clinical"] + per_stratum["count_screen"],
        per_stratum["count_onset"],
        rtol=0,
        atol=1e-9,
    )


def test_no_detection_without_sensitivity_or_attendance(cohort):
    pset = generate_presence(cohort, 0, 6, 0.0, 0.0, 2, 8, FOLLOWUP_YEARS)
    assert (pset["count_screen"] == 0).all()
    np.testing.assert_array_equal(pset["count_clinical"], pset["count_onset"])


def test_empty_screening_window_keeps_every_stratum(cohort):
    pset = generate_presence(cohort, 0, 6, SENSITIVITY, ATTENDANCE, 5, 5, FOLLOWUP_YEARS)
    assert len(pset) == len(cohort)
    assert (pset["screen_year"] == 5).all()
    assert (pset["count_screen"] == 0).all()
    np.testing.assert_array_equal(pset["count_clinical"], pset["count_onset"])


def test_screening_years_are_floored(cohort, pset):
    floored = generate_presence(cohort, 0, 6, SENSITIVITY, ATTENDANCE, 2.7, 8.2, 10.4)
    pd.testing.assert_frame_equal(floored, pset)


@pytest.mark.parametrize(
    "sensitivity, attendance, start, stop",
    [
        (SENSITIVITY, ATTENDANCE, 2, 12),
        (SENSITIVITY, ATTENDANCE, 8, 2),
        (SENSITIVITY, ATTENDANCE, -1, 5),
        (1.5, ATTENDANCE, 2, 8),
        (SENSITIVITY, -0.1, 2, 8),
    ],
)
def test_invalid_screening_parameters(cohort, sensitivity, attendance, start, stop):
    with pytest.raises(InvalidParameter):
        generate_presence(cohort, 0, 6, sensitivity, attendance, start, stop, FOLLOWUP_YEARS)


# ═══════════════════════════════════════════════════════════════════════
# lead_time
# ═══════════════════════════════════════════════════════════════════════

def test_lead_time():
    assert lead_time(0.5, 6) == pytest.approx(4.03125)
    assert lead_time(0.5, 1) == 0.0
    assert lead_time(1.0, 3) == pytest.approx(2.0)
