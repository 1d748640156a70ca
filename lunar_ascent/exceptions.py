###########################################################################
# ERROR KINDS #############################################################
###########################################################################


class LunarAscentError(Exception):
    """Base class of all errors raised by the lunar ascent problem."""


class InvalidParameterization(LunarAscentError, ValueError):
    """
    Decision vector does not match the thrust guidance parameterization.

    Raised before any shared state is touched, so the candidate can simply
    be rejected or resampled.
    """


class PropagationFailed(LunarAscentError, RuntimeError):
    """The propagation could not produce a complete trajectory."""


class ConfigurationError(LunarAscentError, ValueError):
    """Malformed problem set-up. The instance must not be used."""


class ConcurrentEvaluationError(LunarAscentError, RuntimeError):
    """Two evaluations tried to own the same acceleration settings table."""
