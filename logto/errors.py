"""Exception hierarchy for fatal relay conditions."""


class LogtoError(Exception):
    """Base class for every error that ends a logto run."""

    exit_status = 1


class ConfigError(LogtoError):
    """Raised when the resolved configuration is invalid."""

    exit_status = 2


class SpawnError(LogtoError):
    """Raised when the pipe cannot be created or the child cannot be started."""


class SinkError(LogtoError):
    """Raised when the destination cannot be opened or written."""


class StreamError(LogtoError):
    """Raised when reading the child's output fails."""


class BufferOverflowError(LogtoError):
    """Raised when the capture buffer is asked to exceed its bounds."""
