# overdiag/overdiagnosis.py

from overdiag.errors import InvalidParameter
from overdiag.validation import check_probability


def generate_overdiag(dset, overdiag_rate):
    """
    Append overdiagnosed cases as a constant fraction of screen diagnoses.

    overdiag_rate is the share of all screen diagnoses that are
    overdiagnosed, so each screen-detected relevant case carries
    overdiag_rate / (1 - overdiag_rate) overdiagnosed cases. These are
    extra diagnoses and are not drawn from the onset counts.
    """
    if "count_screen" not in dset.columns:
        raise InvalidParameter("generate_overdiag requires a count_screen column")
    overdiag_rate = check_probability(overdiag_rate, "overdiag_rate", upper_inclusive=False)

    dset = dset.copy()
    dset["count_overdiag"] = overdiag_rate * dset["count_screen"] / (1.0 - overdiag_rate)
    return dset
