"""Custom exceptions for the research gate application."""


class ResearchGateException(Exception):
    """Base class for research gate exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Research gate error"):
        self.message = message
        super().__init__(message)


class RateLimitExceededError(ResearchGateException):
    """Raised when a session has used up its auto-research budget.

    Only the fail-closed enforce path raises this; the trigger itself
    reports a denied budget as an untriggered result.
    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        count: int = 0,
        max_triggers: int = 0,
    ):
        self.session_id = session_id
        self.count = count
        self.max_triggers = max_triggers
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API response format."""
        return {
            "error": "rate_limit_exceeded",
            "message": self.message,
            "session_id": self.session_id,
            "count": self.count,
            "max_triggers": self.max_triggers,
        }


class ResearchTimeoutError(ResearchGateException):
    """Raised when research calls do not finish inside the timeout.

    Maps to HTTP 504 Gateway Timeout.
    """
    status_code = 504

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Auto-research timed out after {timeout:g}s")


class ResearchProviderError(ResearchGateException):
    """Raised when an external research provider call fails.

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502

    def __init__(self, provider: str, message: str = "Research provider failed"):
        self.provider = provider
        super().__init__(f"{provider}: {message}")
