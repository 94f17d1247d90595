"""Exception hierarchy for reqwire.

Every execution call either returns a Result or raises exactly one
ReqwireError; the error carries the Result so callers can still inspect
the status code, the wire request and the number of attempts.
"""

from reqwire.types import Result


class ReqwireError(Exception):
    """Base exception for request execution errors."""

    def __init__(self, message: str, result: Result | None = None):
        self.message = message
        self.result = result
        super().__init__(message)


class ConfigurationError(ReqwireError):
    """Raised when one or more options failed to apply."""

    def __init__(self, errors: list[str], result: Result | None = None):
        self.errors = list(errors)
        super().__init__("\n".join(self.errors), result)


class InvalidURLError(ReqwireError):
    """Raised when the target URL cannot be parsed."""


class RequestBuildError(ReqwireError):
    """Raised when the wire request could not be built on the last attempt."""


class TransportError(ReqwireError):
    """Raised when every attempt failed at the network level."""


class StatusError(ReqwireError):
    """Raised for a final status code >= 300 when status errors are enabled.

    The message is the response body text.
    """

    def __init__(self, status_code: int, body: str, result: Result | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(body, result)


class DecodeError(ReqwireError):
    """Raised when the response body cannot be decoded into the unwrap target."""


class ResponseWriteError(ReqwireError):
    """Raised when the copy target rejects the response body."""
