"""Error taxonomy shared by the transport client, session and sync layers."""

from __future__ import annotations

from typing import Any, Dict, List


class PoloClientError(RuntimeError):
    """Base class for every failure surfaced to a UI-triggered operation."""

    @property
    def user_message(self) -> str:
        return str(self)


class NetworkError(PoloClientError):
    """No response was obtained (connectivity, DNS, timeout)."""

    @property
    def user_message(self) -> str:
        return f"Network error: {self}"


class ApiError(PoloClientError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code!r}, message={self.message!r})"


class DecodingError(PoloClientError):
    """The response body did not match the expected shape."""

    def __init__(self, message: str, errors: List[Dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    @property
    def user_message(self) -> str:
        return "Invalid response from server"


class InvalidURLError(PoloClientError):
    pass


class UnsyncedReferenceError(PoloClientError):
    """A record references another record that has no remote id yet."""
