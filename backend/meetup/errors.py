"""Exception types shared by the store, the router and the broadcast sessions."""


class MeetupError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(MeetupError):
    """Raised when a submission is missing required fields."""


class MethodNotAllowedError(MeetupError):
    """Raised when an endpoint is called with an unsupported HTTP method."""

    def __init__(self, method: str, allowed: str = "POST"):
        super().__init__(f"Method {method} not allowed")
        self.method = method
        self.allowed = allowed


class StoreError(MeetupError):
    """Raised when the underlying database fails."""


class TransportClosed(MeetupError):
    """Raised when writing to an SSE channel whose client has gone away."""
