from __future__ import annotations

from typing import Optional


class YahooApiError(Exception):
    """Base for everything that goes wrong talking to Yahoo."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class AuthExpired(YahooApiError):
    pass


class RateLimited(YahooApiError):
    pass


class TransientNetwork(YahooApiError):
    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, url)
        self.status_code = status_code


class MalformedResponse(YahooApiError):
    pass


class ExhaustedRetries(YahooApiError):
    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Yahoo request failed after {attempts} attempts on {url}: {last_error}", url)
        self.attempts = attempts
        self.last_error = last_error


class CredentialExchangeError(YahooApiError):
    pass


class SyncError(Exception):
    """A league could not be synced (precondition or persistence problem)."""


class PersistenceFailure(SyncError):
    def __init__(self, entity: str, cause: BaseException):
        super().__init__(f"Failed to persist {entity}: {cause}")
        self.entity = entity
        self.cause = cause
