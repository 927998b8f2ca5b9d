"""Unit tests for handler decorators."""

from unittest.mock import MagicMock, patch

import pytest
from jsonschema import ValidationError

from pattern_matcher.handlers.decorators import handle_errors, validate_event

pytestmark = pytest.mark.unit


class TestValidateEvent:
    @pytest.mark.asyncio
    async def test_validate_event_success(self):
        mock_validator = MagicMock()

        with patch("pattern_matcher.handlers.decorators.validator", mock_validator):
            @validate_event("asset_finalized")
            async def handler(self, event_data):
                return "ok"

            result = await handler(None, {"path": "a/b.jpg"})

        mock_validator.validate_event.assert_called_once_with("asset_finalized", {"path": "a/b.jpg"})
        assert result == "ok"

    @pytest.mark.asyncio
    async def test_validate_event_with_kwargs(self):
        mock_validator = MagicMock()

        with patch("pattern_matcher.handlers.decorators.validator", mock_validator):
            @validate_event("asset_finalized")
            async def handler(self, event_data):
                return "ok"

            assert await handler(self=None, event_data={"path": "x.jpg"}) == "ok"

    @pytest.mark.asyncio
    async def test_missing_event_data(self):
        @validate_event("asset_finalized")
        async def handler(self):
            return "ok"

        with pytest.raises(ValueError, match="Event data not found in arguments"):
            await handler(None)

    @pytest.mark.asyncio
    async def test_real_schema_rejects_missing_path(self):
        @validate_event("asset_finalized")
        async def handler(self, event_data):
            return "ok"

        with pytest.raises(ValidationError):
            await handler(None, {"bucket_id": "b"})


class TestHandleErrors:
    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        @handle_errors
        async def handler():
            return 42

        assert await handler() == 42

    @pytest.mark.asyncio
    async def test_logs_and_reraises(self):
        with patch("pattern_matcher.handlers.decorators.logger") as mock_logger:
            @handle_errors
            async def handler():
                raise RuntimeError("boom")

            with pytest.raises(RuntimeError, match="boom"):
                await handler()

        mock_logger.exception.assert_called_once()
