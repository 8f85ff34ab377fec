import logging
from functools import wraps

import httpx

logger = logging.getLogger(__name__)


class FeedsException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class FeedsValidationError(FeedsException):
    """A local action was rejected before any state change or network call"""

    def __init__(self, message: str):
        super().__init__(message, 400)


class InvalidReactionError(FeedsValidationError):
    pass


class FeedsAPIException(FeedsException):
    """The feeds service could not be reached or answered with an error"""

    def __init__(self, message: str, status_code: int = 502, upstream_status=None):
        self.upstream_status = upstream_status
        super().__init__(message, status_code)


def api_exception(context: str):
    """Translate httpx failures raised by an async client call into FeedsAPIException."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.error(f"[Feeds API] {context} failed with status {status}")
                raise FeedsAPIException(
                    f"Failed to {context}", upstream_status=status
                ) from e
            except httpx.RequestError as e:
                logger.error(f"[Feeds API] {context} failed: {type(e).__name__}")
                raise FeedsAPIException(
                    f"Feeds service unreachable while trying to {context}", 503
                ) from e
            except ValueError as e:
                logger.error(f"[Feeds API] {context} returned an unreadable body")
                raise FeedsAPIException(f"Invalid response while trying to {context}") from e

        return wrapper

    return decorator
