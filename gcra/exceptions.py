"""Custom exceptions for the rate limiter."""


class RateLimiterError(Exception):
    """Base class for rate limiter exceptions.

    All custom exceptions should inherit from this class so hosts can catch
    every limiter failure with a single ``except`` clause.
    """

    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class StoreUpdateFailure(RateLimiterError):
    """Raised when the limiter could not commit a new state for a key.

    Every attempt lost its compare-and-set (or create) against a concurrent
    writer, or the store kept refusing writes. The caller decides whether
    to fail the request, fail open, or fail closed.
    """

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(
            f"Failed to store updated rate limit data for key '{key}' "
            f"after {attempts} attempts"
        )
