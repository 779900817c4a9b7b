"""
Tests for error classification (core/errors.py)
"""

import pytest

from core.errors import (
    CredentialInvalidError,
    ErrorKind,
    GenerationEmptyError,
    MalformedResponseError,
    RequestTimeoutError,
    classify_error,
    is_access_error,
    is_invalid_credential_error,
)


class TestClassifyError:
    """Tests for classify_error / is_access_error."""

    @pytest.mark.parametrize(
        "message",
        [
            "Requested entity was not found.",
            "404 NOT_FOUND: models/gemini-2.5-pro is Not Found",
            "403 PERMISSION_DENIED",
            "Access DENIED for this project",
            "The caller is not authorized to use this model",
        ],
    )
    def test_access_messages(self, message):
        assert classify_error(RuntimeError(message)) is ErrorKind.ACCESS_DENIED
        assert is_access_error(RuntimeError(message))

    def test_timeout_is_access_class(self):
        assert classify_error(RequestTimeoutError()) is ErrorKind.TIMEOUT
        assert is_access_error(RequestTimeoutError())

    @pytest.mark.parametrize(
        "error, kind",
        [
            (RuntimeError("500 INTERNAL"), ErrorKind.UNCLASSIFIED),
            (RuntimeError("429 RESOURCE_EXHAUSTED"), ErrorKind.UNCLASSIFIED),
            (GenerationEmptyError(), ErrorKind.GENERATION_EMPTY),
            (MalformedResponseError("bad json"), ErrorKind.MALFORMED_RESPONSE),
            (CredentialInvalidError(), ErrorKind.CREDENTIAL_INVALID),
        ],
    )
    def test_everything_else_is_a_hard_stop(self, error, kind):
        assert classify_error(error) is kind
        assert not is_access_error(error)

    def test_own_errors_are_not_reclassified_by_message(self):
        # The message mentions "not found" but the kind is explicit.
        error = MalformedResponseError("field 'angles' not found")
        assert classify_error(error) is ErrorKind.MALFORMED_RESPONSE

    def test_sdk_error_message_attribute_is_used(self):
        class FakeAPIError(Exception):
            def __init__(self):
                super().__init__("404 None.")
                self.message = "Requested entity was not found."

        assert classify_error(FakeAPIError()) is ErrorKind.ACCESS_DENIED
        assert is_invalid_credential_error(FakeAPIError())


class TestErrorKinds:
    def test_default_message_is_kind(self):
        assert str(GenerationEmptyError()) == "GENERATION_EMPTY"

    def test_invalid_credential_marker(self):
        assert is_invalid_credential_error(RuntimeError("Requested entity was not found."))
        assert not is_invalid_credential_error(RuntimeError("403 PERMISSION_DENIED"))
