"""Error types raised by the listing pipeline."""

from __future__ import annotations

from typing import Optional


class ListingError(Exception):
    """Base class; http_status is the status a web handler should answer with."""

    http_status = 500


class ConfigurationError(ListingError):
    http_status = 500


class _HttpFailure(ListingError):
    def __init__(self, message: str, status: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class AuthExchangeError(_HttpFailure):
    """The OAuth token endpoint rejected a refresh."""

    http_status = 502

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Allegro token error {status}: {body}", status, body)


class AuthError(_HttpFailure):
    """A request was rejected with 401/403 even after a forced refresh."""

    http_status = 401

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Allegro auth error {status}: {body}", status, body)


class ApiError(_HttpFailure):
    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Allegro API error {status}: {body}", status, body)

    @property
    def http_status(self) -> int:  # type: ignore[override]
        return self.status if 400 <= self.status < 600 else 502


class StorageError(_HttpFailure):
    def __init__(self, message: str, status: int = 0, body: str = "") -> None:
        super().__init__(f"{message} ({status}): {body}" if status else message, status, body)


class TokenConflictError(ListingError):
    """A conditional token update found the row already replaced."""


class NotFoundError(ListingError):
    http_status = 404


class InsufficientStockError(ListingError):
    http_status = 409

    def __init__(self, available: float, required: int) -> None:
        super().__init__(
            f"Insufficient stock: {available:g} available, at least {required} required"
        )
        self.available = available
        self.required = required


class GatewayError(ListingError):
    http_status = 502

    def __init__(self, message: str, attempt_logged: bool = True) -> None:
        super().__init__(message)
        self.attempt_logged = attempt_logged


class EanScanError(ListingError):
    http_status = 400

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        if status is not None:
            self.http_status = status
