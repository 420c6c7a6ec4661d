"""
Error taxonomy for the simulation core.

Callers react differently to each channel:
    ConfigurationError: bad input, surfaced at load time; the run must not start.
    ContractViolation: a bug in the calling code (usually a Monte Carlo move);
        continuing would corrupt state, so it is never caught internally.
    ResourceExhaustedError: the requested trial cannot be performed right now;
        the move should reject/abstain and the run continues.
"""


class MCSpaceError(Exception):
    """Base class for all package errors."""


class ConfigurationError(MCSpaceError, ValueError):
    """Malformed geometry, volume, catalog or serialized record."""


class ContractViolation(MCSpaceError, RuntimeError):
    """Precondition broken by the caller (capacity mismatch, span outside window, ...)."""


class StaleRangeError(ContractViolation):
    """Group window used after its particle buffer was reallocated."""


class ResourceExhaustedError(MCSpaceError, RuntimeError):
    """Recoverable failure, e.g. no conformation available for a molecule."""


class InsertionError(ResourceExhaustedError):
    """Insertion retry budget exceeded."""

    def __init__(self, trials: int, molecule: str = ""):
        self.trials = trials
        self.molecule = molecule
        where = f" of '{molecule}'" if molecule else ""
        super().__init__(f"insertion{where} failed after {trials} trials")
