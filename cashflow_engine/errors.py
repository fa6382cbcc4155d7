"""Exception types raised by the cash-flow analytics."""


class PreconditionError(ValueError):
    """An input violates the contract of the requested analytic."""


class EmptyLegError(PreconditionError):
    pass


class UnsupportedConventionError(PreconditionError):
    """Unknown or inapplicable compounding, duration type, frequency or day count."""


class SignChangeError(PreconditionError):
    """The cash-flow signs cannot reproduce the requested price."""


class CouponAggregationError(PreconditionError):
    pass


class NullBpsError(PreconditionError):
    pass


class ConvergenceError(RuntimeError):
    """A root search exhausted its evaluation budget."""
