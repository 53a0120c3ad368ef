"""Error taxonomy and structured error responses.

Every failure that can leave the engine is one of the exceptions below.
`handle_error` converts any exception into the `{"success": False, "error"}`
payload returned to callers; stack traces are only included in diagnostic
mode.
"""

import logging
import traceback
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Broad category of a failure."""

    NETWORK = "NETWORK"
    API = "API"
    EXTRACTION = "EXTRACTION"
    CACHE = "CACHE"
    SETTINGS = "SETTINGS"
    GENERAL = "GENERAL"


class CrossmatchError(Exception):
    """Base class for all engine errors.

    Attributes:
        error_type: Category of the failure.
        original_error: Underlying exception, if any.
    """

    error_type: ErrorType = ErrorType.GENERAL
    default_message = "An unknown error occurred"

    def __init__(self, message: str | None = None, original_error: BaseException | None = None):
        super().__init__(message or self.default_message)
        self.original_error = original_error


class NoMatcherForPage(CrossmatchError):
    """No adapter recognised the current page."""

    error_type = ErrorType.EXTRACTION
    default_message = "no matcher for marketplace"


class NoCandidatesFound(CrossmatchError):
    """The page contains no result listings."""

    error_type = ErrorType.EXTRACTION
    default_message = "no search results found on page"


class NoValidCandidateData(CrossmatchError):
    """Result listings were found but none yielded a title and a price."""

    error_type = ErrorType.EXTRACTION
    default_message = "no valid candidates could be extracted from search results"


class ExtractionTimeout(CrossmatchError):
    """Reading or scoring a loaded page took too long."""

    error_type = ErrorType.EXTRACTION
    default_message = "extraction timed out"


class LoadTimeout(CrossmatchError):
    """A browsing context did not finish loading in time."""

    error_type = ErrorType.NETWORK
    default_message = "page load timed out"


class CacheReadFailure(CrossmatchError):
    """The durable store could not be read. Treated as a cache miss."""

    error_type = ErrorType.CACHE
    default_message = "cache read failed"


class CacheWriteFailure(CrossmatchError):
    """The durable store could not be written. The in-process tier still holds the value."""

    error_type = ErrorType.CACHE
    default_message = "cache write failed"


class RemoteApiFailure(CrossmatchError):
    """The remote marketplace-data API failed.

    Attributes:
        marketplace: Marketplace the failing request was scoped to, None for
            multi-marketplace requests.
        status: HTTP status code when the server answered.
    """

    error_type = ErrorType.API
    default_message = "remote API request failed"

    def __init__(
        self,
        message: str | None = None,
        original_error: BaseException | None = None,
        marketplace: str | None = None,
        status: int | None = None,
    ):
        super().__init__(message, original_error)
        self.marketplace = marketplace
        self.status = status


def handle_error(error: BaseException, context: str, diagnostic: bool = False) -> dict[str, Any]:
    """Convert an exception into the structured failure payload.

    Args:
        error: Exception raised while serving a request.
        context: Short description of what was being done, for the log.
        diagnostic: Attach the formatted traceback under `error_details`.

    Returns:
        Dictionary with `success: False` and a human readable `error`.
    """
    if isinstance(error, CrossmatchError):
        logger.error(f"{error.error_type.value} error in {context}: {error}")
        message = str(error)
    else:
        logger.error(f"Error in {context}: {error}")
        message = str(error) or error.__class__.__name__

    response: dict[str, Any] = {"success": False, "error": message}
    if diagnostic:
        response["error_details"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
    return response
