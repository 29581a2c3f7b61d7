"""
Error types raised by the MPC steering pipeline
"""


class MPCError(Exception):
    """Base class for controller errors."""


class InvalidInputError(MPCError, ValueError):
    """Waypoints or telemetry that cannot feed the requested fit."""


class IllConditionedError(MPCError, ArithmeticError):
    """Least-squares design matrix is rank deficient."""


class SolveFailure(MPCError, RuntimeError):
    """
    Optimizer finished without a usable solution.

    Args:
        kind: SolveStatus describing the failure
        message: solver return message
    """

    def __init__(self, kind, message=""):
        self.kind = kind
        super().__init__(f"{kind.value}: {message}" if message else kind.value)


class ConfigurationInvariantViolation(MPCError, RuntimeError):
    """Configuration that can never produce a valid command. Not retried."""
