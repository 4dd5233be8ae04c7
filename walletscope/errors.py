"""Exception hierarchy. Each error carries an HTTP-style status class."""

from __future__ import annotations


class WalletscopeError(Exception):
    """Base error surfaced to callers with a human-readable message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(WalletscopeError):
    """Malformed wallet address or missing credential. Never retried."""

    status_code = 400


class NoTransactionsError(WalletscopeError):
    """The source answered but the wallet has no matching activity."""

    status_code = 404


class UpstreamError(WalletscopeError):
    """Network failure or non-2xx response from an external data source."""

    status_code = 502
