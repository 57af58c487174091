"""Exceptions raised by the title search client."""


class LookupServiceError(Exception):
    """Base error for failed title searches."""


class TransientLookupError(LookupServiceError):
    """Raised for failures expected to clear up on retry (rate limit, server error)."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class TerminalLookupError(LookupServiceError):
    """Raised for failures that retrying will not fix."""
