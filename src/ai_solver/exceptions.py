"""Custom exception hierarchy for the AI solver."""


class SolverError(Exception):
    """Base exception for AI solver errors."""
    pass


class ValidationError(SolverError):
    """Request rejected before anything is sent (missing prompt, class or subject)."""
    pass


class SessionBusyError(SolverError):
    """A send or clear was attempted while a request is in flight."""
    pass


class TransportError(SolverError):
    """The request could not be completed at the network layer."""

    DEFAULT_MESSAGE = "Failed to connect to AI solver"

    def __init__(self, message: str = DEFAULT_MESSAGE, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(SolverError):
    """The server signalled a failure in the middle of the stream."""
    pass


class FrameParseError(SolverError):
    """A single stream frame could not be parsed."""
    pass


class ConfigurationError(SolverError):
    """Configuration errors."""
    pass


class EngineError(SolverError):
    """Answer generation errors."""
    pass
