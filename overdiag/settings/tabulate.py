# overdiag/settings/tabulate.py

SETTING_COLUMNS = ["year", "count_clinical", "count_screen", "count_overdiag"]
TRIAL_COLUMNS = ["year", "arm", "count_clinical", "count_screen", "count_overdiag"]


def clinical_by_year(pset):
    """
    Count clinical diagnoses in each year.

    The long screening table repeats each stratum once per screening round,
    and count_clinical is constant within a stratum, so strata are collapsed
    to a single entry before summing.
    """
    clinical = pset.drop_duplicates(subset=["clinical_year", "sojourn"])
    clinical = clinical.groupby("clinical_year", as_index=False)["count_clinical"].sum()
    return clinical.rename(columns={"clinical_year": "year"})


def screened_by_year(pset):
    """Count screen diagnoses and overdiagnoses in each screening round."""
    screened = pset.groupby("screen_year", as_index=False)[
        ["count_screen", "count_overdiag"]
    ].sum()
    return screened.rename(columns={"screen_year": "year"})
