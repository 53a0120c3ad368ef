"""Tests for the error taxonomy and structured error responses."""

import pytest

from crossmatch.errors import (
    CacheReadFailure,
    CrossmatchError,
    ErrorType,
    ExtractionTimeout,
    LoadTimeout,
    NoCandidatesFound,
    NoMatcherForPage,
    NoValidCandidateData,
    RemoteApiFailure,
    handle_error,
)


@pytest.mark.parametrize(
    "error_class,error_type",
    [
        (NoMatcherForPage, ErrorType.EXTRACTION),
        (NoCandidatesFound, ErrorType.EXTRACTION),
        (NoValidCandidateData, ErrorType.EXTRACTION),
        (ExtractionTimeout, ErrorType.EXTRACTION),
        (LoadTimeout, ErrorType.NETWORK),
        (CacheReadFailure, ErrorType.CACHE),
        (RemoteApiFailure, ErrorType.API),
    ],
)
def test_error_categories(error_class, error_type):
    """Test every failure carries its category and a default message."""
    error = error_class()
    assert isinstance(error, CrossmatchError)
    assert error.error_type == error_type
    assert str(error) == error_class.default_message


def test_original_error_kept():
    cause = OSError("socket closed")
    error = RemoteApiFailure("search failed", cause, marketplace="walmart", status=502)

    assert error.original_error is cause
    assert error.marketplace == "walmart"
    assert error.status == 502


def test_handle_error_payload():
    """Test failures become a success=False payload without details."""
    response = handle_error(NoMatcherForPage("no matcher for marketplace at https://x"), "find_matches")

    assert response == {"success": False, "error": "no matcher for marketplace at https://x"}


def test_handle_error_diagnostic_mode():
    """Test the traceback is attached only in diagnostic mode."""
    try:
        raise ValueError("bad product")
    except ValueError as e:
        response = handle_error(e, "compare_product", diagnostic=True)

    assert response["success"] is False
    assert response["error"] == "bad product"
    assert "Traceback" in response["error_details"]
    assert "ValueError: bad product" in response["error_details"]


def test_handle_error_without_message():
    assert handle_error(KeyError(), "lookup")["error"] == "KeyError"
