class SimulationError(Exception):
    """Base exception for all traffic light simulation errors."""
    pass

class InvalidInputError(SimulationError, ValueError):
    """Raised when arrival rates, periods or run settings are out of range."""
    pass

class AllocationError(SimulationError):
    """Raised when a vehicle or queue slot cannot be allocated during a run."""
    pass

class NonTerminatingRunError(SimulationError):
    """Raised when a run exceeds its configured iteration bound."""
    pass

class NoSuccessfulRunsError(SimulationError):
    """Raised when every attempted run failed and nothing can be averaged."""
    pass
