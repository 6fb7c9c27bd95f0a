# overdiag/validation.py

import math
import numbers

from overdiag.errors import InvalidParameter


def as_integer(value, name):
    """
    Convert a year-like or population-size input to int by flooring.
    The same rule is applied at every public entry point.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(f"{name} must be numeric, got {value!r}")
    if not math.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value!r}")
    return int(math.floor(value))


def check_real(value, name):
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameter(f"{name} must be numeric, got {value!r}")
    if not math.isfinite(value):
        raise InvalidParameter(f"{name} must be finite, got {value!r}")
    return float(value)


def check_probability(value, name, upper_inclusive=True):
    value = check_real(value, name)
    if upper_inclusive:
        if not 0.0 <= value <= 1.0:
            raise InvalidParameter(f"{name} must lie in [0, 1], got {value}")
    elif not 0.0 <= value < 1.0:
        raise InvalidParameter(f"{name} must lie in [0, 1), got {value}")
    return value


def check_sojourn_range(sojourn_min, sojourn_max):
    sojourn_min = as_integer(sojourn_min, "sojourn_min")
    sojourn_max = as_integer(sojourn_max, "sojourn_max")
    if not 0 <= sojourn_min <= sojourn_max:
        raise InvalidParameter(
            f"require 0 <= sojourn_min <= sojourn_max, got {sojourn_min}, {sojourn_max}"
        )
    return sojourn_min, sojourn_max


def check_screen_window(screen_start_year, screen_stop_year, followup_years=None):
    """
    Validate 0 <= start <= stop (<= followup) and return the integer years.
    """
    start = as_integer(screen_start_year, "screen_start_year")
    stop = as_integer(screen_stop_year, "screen_stop_year")
    if not 0 <= start <= stop:
        raise InvalidParameter(
            f"require 0 <= screen_start_year <= screen_stop_year, got {start}, {stop}"
        )
    if followup_years is not None:
        followup = as_integer(followup_years, "followup_years")
        if stop > followup:
            raise InvalidParameter(
                f"screen_stop_year ({stop}) exceeds followup_years ({followup})"
            )
    return start, stop


def check_cohort_parameters(pop_size, onset_rate, sojourn_min, sojourn_max, followup_years):
    """
    Validate the inputs shared by every cohort: returns
    (pop_size, onset_rate, sojourn_min, sojourn_max, followup_years)
    with sizes and years converted to int.
    """
    pop_size = as_integer(pop_size, "pop_size")
    followup_years = as_integer(followup_years, "followup_years")
    onset_rate = check_real(onset_rate, "onset_rate")
    if pop_size <= 0:
        raise InvalidParameter(f"pop_size must be positive, got {pop_size}")
    if followup_years <= 0:
        raise InvalidParameter(f"followup_years must be positive, got {followup_years}")
    if onset_rate < 0:
        raise InvalidParameter(f"onset_rate must be non-negative, got {onset_rate}")
    sojourn_min, sojourn_max = check_sojourn_range(sojourn_min, sojourn_max)
    return pop_size, onset_rate, sojourn_min, sojourn_max, followup_years
