"""
Tests for ServiceResult and BaseService.

ServiceResult is the contract between services and their callers (REST
views and the WebSocket consumer), so its failure shape must be stable.
"""

from core.services import BaseService, ServiceResult


class TestServiceResult:
    """Tests for ServiceResult."""

    def test_success(self):
        result = ServiceResult.success({"id": 1})

        assert result.success is True
        assert bool(result) is True
        assert result.data == {"id": 1}
        assert result.error is None

    def test_failure(self):
        result = ServiceResult.failure("Receiver not found", "RECEIVER_NOT_FOUND")

        assert result.success is False
        assert bool(result) is False
        assert result.data is None
        assert result.error_code == "RECEIVER_NOT_FOUND"

    def test_to_response_uses_error_envelope(self):
        """
        Given a failed result
        Then the response body is {"error", "error_code"}

        Why it matters: clients branch on error_code for every endpoint.
        """
        body = ServiceResult.failure("Bad", "EMPTY_CONTENT").to_response()

        assert body == {"error": "Bad", "error_code": "EMPTY_CONTENT"}

    def test_to_response_includes_field_errors(self):
        body = ServiceResult.failure("Invalid", "VALIDATION_ERROR", {"content": ["Required"]}).to_response()

        assert body["errors"] == {"content": ["Required"]}

    def test_map_transforms_success_only(self):
        assert ServiceResult.success(2).map(lambda x: x * 10).data == 20

        failed = ServiceResult.failure("nope", "X").map(lambda x: x * 10)
        assert failed.success is False
        assert failed.error_code == "X"


class TestBaseService:
    def test_logger_is_named_after_module(self):
        class ExampleService(BaseService):
            pass

        assert ExampleService.get_logger().name == f"{__name__}.ExampleService"
