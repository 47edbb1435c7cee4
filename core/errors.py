class AIError(Exception):
    """Base exception class for the AI connector."""
    pass

class ConfigError(AIError):
    """Raised when a request cannot be dispatched with the given configuration."""
    pass

class TransportError(AIError):
    """Raised when the backend call fails (HTTP status, connection, timeout or subprocess)."""

    def __init__(self, message: str = "Request failed"):
        super().__init__(message)
