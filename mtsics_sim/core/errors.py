"""Domain-specific errors for mtsics-sim."""


class SimulatorError(Exception):
    """Base error for mtsics-sim."""


class ProfileValidationError(SimulatorError):
    """Raised when an instrument profile does not conform to schema or semantics."""


class ProfileLoadError(SimulatorError):
    """Raised when reading a profile source fails."""


class InvalidStateTransition(SimulatorError):
    """Raised when the engine is asked to move between unrelated states."""


class TransportError(SimulatorError):
    """Base transport error."""


class TransportOpenError(TransportError):
    """Raised when the serial device cannot be opened."""


class TransportWriteError(TransportError):
    """Raised when writing a response fails."""
