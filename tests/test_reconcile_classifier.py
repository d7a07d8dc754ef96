"""Tests for reconcile/classifier.py."""

import httpx
import pytest
from fusionauth_provider.clients.results import (
    NOT_FOUND_CODE,
    ApiError,
    ErrorDetail,
    Success,
    TransportError,
)
from fusionauth_provider.core.errors import FatalRemoteError, RetryableRemoteError
from fusionauth_provider.reconcile.classifier import (
    ClassifyContext,
    FatalFailure,
    Proceed,
    RetryableFailure,
    classify,
)

NOT_FOUND = ApiError(404, (ErrorDetail(NOT_FOUND_CODE, "not found"),))
TRANSPORT = TransportError(httpx.ConnectError("connection refused"))


class TestClassifySuccess:
    def test_success_proceeds_with_payload(self):
        decision = classify(Success(200, {"id": "abc"}))

        assert decision == Proceed(payload={"id": "abc"})
        assert decision.absent is False

    def test_empty_success_proceeds(self):
        assert classify(Success(200)) == Proceed(payload={})

    def test_non_2xx_success_is_fatal(self):
        decision = classify(Success(302, {}), resource="fusionauth_key.a")

        assert isinstance(decision, FatalFailure)
        assert decision.error.details["status"] == 302
        assert decision.error.details["resource"] == "fusionauth_key.a"


class TestClassifyApiErrors:
    def test_not_found_in_delete_context_is_success(self):
        decision = classify(NOT_FOUND, ClassifyContext.DELETE)

        assert isinstance(decision, Proceed)
        assert decision.absent is True

    def test_not_found_code_without_404_is_success_for_delete(self):
        result = ApiError(400, (ErrorDetail(NOT_FOUND_CODE, "gone"),))

        assert classify(result, ClassifyContext.DELETE) == Proceed(absent=True)

    def test_not_found_in_default_context_is_fatal(self):
        decision = classify(NOT_FOUND)

        assert isinstance(decision, FatalFailure)
        assert isinstance(decision.error, FatalRemoteError)

    def test_other_api_error_is_fatal_even_for_delete(self):
        result = ApiError(400, (ErrorDetail("[invalid]key.length", "bad length", "key.length"),))

        decision = classify(result, ClassifyContext.DELETE, operation="delete")

        assert isinstance(decision, FatalFailure)
        assert "bad length" in decision.error.message
        assert decision.error.details["operation"] == "delete"
        assert decision.error.details["status"] == 400

    def test_api_error_without_details_is_fatal(self):
        decision = classify(ApiError(500))

        assert isinstance(decision, FatalFailure)
        assert "no error details" in decision.error.details["cause"]

    def test_retry_tolerance_does_not_soften_api_errors(self):
        decision = classify(ApiError(401), retry_tolerant=True)

        assert isinstance(decision, FatalFailure)


class TestClassifyTransport:
    def test_transport_error_is_fatal_by_default(self):
        decision = classify(TRANSPORT)

        assert isinstance(decision, FatalFailure)
        assert "ConnectError" in decision.error.details["cause"]

    def test_transport_error_is_retryable_when_tolerant(self):
        decision = classify(TRANSPORT, retry_tolerant=True)

        assert isinstance(decision, RetryableFailure)
        assert isinstance(decision.error, RetryableRemoteError)

    @pytest.mark.parametrize("context", list(ClassifyContext))
    def test_context_does_not_affect_transport(self, context):
        assert isinstance(classify(TRANSPORT, context), FatalFailure)


def test_unknown_result_type_rejected():
    with pytest.raises(TypeError):
        classify("not a result")  # type: ignore[arg-type]
