"""Exceptions raised while talking to the exchange."""

from typing import Optional


class ExchangeError(Exception):
    """A request to the exchange failed or returned an unsuccessful envelope."""

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        status: Optional[int] = None,
        code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.status = status
        self.code = code

    def __str__(self) -> str:
        return self.message


class TransientExchangeError(ExchangeError):
    """Rate limit, 5xx or connection failure; the request may be retried."""


class PortfolioUnavailableError(ExchangeError):
    """A source the snapshot cannot be built without has failed."""
