"""Exceptions raised by fracflow.

All of them are fatal for a simulation run. The only condition that is handled
locally, shrinking the time step when the saturation update is too large, is part of
the time marching algorithm and does not use exceptions.

"""

from __future__ import annotations

__all__ = [
    "FracFlowError",
    "MalformedInputError",
    "NumericalInstabilityError",
    "ExternalSolverError",
    "InvariantViolationError",
]


class FracFlowError(Exception):
    """Base class for errors that terminate a run."""


class MalformedInputError(FracFlowError):
    """Input data is inconsistent.

    Examples are a boundary node assigned to two boundary regions, a boundary region
    referencing a cell which is neither a point nor a line, or an unknown keyword in a
    configuration file. The message contains entity ids and, if available, the source
    line.

    """


class NumericalInstabilityError(FracFlowError):
    """The saturation update could not be brought within bounds.

    Raised when the time step falls below the minimum time step, or when the maximum
    number of sub-step attempts is exceeded.

    """


class ExternalSolverError(FracFlowError):
    """The linear solver failed to solve the pressure system."""


class InvariantViolationError(FracFlowError):
    """A programming or setup defect, e.g. nodes added out of order."""
