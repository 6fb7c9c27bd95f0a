# overdiag/errors.py


class InvalidParameter(ValueError):
    """Out-of-range or inconsistent model input, raised before any computation."""


class InvariantViolation(RuntimeError):
    """
    Internal accounting check failed (onset counts do not reconcile with
    clinical plus screen-detected counts). Signals a defect in the model,
    never a data problem, so it is not caught anywhere in the package.
    """
