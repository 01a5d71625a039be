import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from google.genai import errors

from adscope.config import get_settings
from adscope.exceptions import AnalysisFailure
from adscope.models.analysis import ImageAnalysis, VideoAnalysis
from adscope.services.gemini import GeminiAnalyzer
from conftest import GEMINI_IMAGE_JSON, GEMINI_VIDEO_JSON


def _file_state(state):
    status = MagicMock()
    status.state = state
    return status


@pytest.fixture
def genai_client():
    client = MagicMock()
    uploaded = MagicMock()
    uploaded.name = "files/abc123"
    client.aio.files.upload = AsyncMock(return_value=uploaded)
    client.aio.files.get = AsyncMock(return_value=_file_state("ACTIVE"))
    client.aio.files.delete = AsyncMock()
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=GEMINI_VIDEO_JSON))
    return client


@pytest.fixture
def analyzer(genai_client):
    return GeminiAnalyzer(client=genai_client, model="gemini-test", poll_interval=0, poll_attempts=3)


@pytest.fixture
def staged(stager):
    return stager.stage(b"media-bytes", "clip.mp4")


class TestAnalyzeVideo:
    def test_returns_video_analysis(self, analyzer, staged):
        result = asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert isinstance(result, VideoAnalysis)
        assert result.description == "A product demo"
        assert result.transcript == "Hello world"
        assert result.scenes == ["intro", "demo", "outro"]
        assert result.copy_result is None

    def test_uploads_staged_file_and_deletes_it(self, analyzer, genai_client, staged):
        asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        kwargs = genai_client.aio.files.upload.await_args.kwargs
        assert kwargs["file"] == str(staged.path)
        assert kwargs["config"].mime_type == "video/mp4"
        genai_client.aio.files.delete.assert_awaited_once_with(name="files/abc123")

    def test_uses_configured_model(self, analyzer, genai_client, staged):
        asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert genai_client.aio.models.generate_content.await_args.kwargs["model"] == "gemini-test"

    def test_polls_until_active(self, analyzer, genai_client, staged):
        genai_client.aio.files.get.side_effect = [_file_state("PROCESSING"), _file_state("ACTIVE")]
        asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert genai_client.aio.files.get.await_count == 2

    def test_processing_timeout(self, analyzer, genai_client, staged):
        genai_client.aio.files.get.return_value = _file_state("PROCESSING")
        with pytest.raises(AnalysisFailure, match="timed out"):
            asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert genai_client.aio.files.get.await_count == 3
        genai_client.aio.files.delete.assert_awaited_once()

    def test_failed_processing(self, analyzer, genai_client, staged):
        genai_client.aio.files.get.return_value = _file_state("FAILED")
        with pytest.raises(AnalysisFailure, match="could not process"):
            asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        genai_client.aio.models.generate_content.assert_not_awaited()

    def test_empty_transcript_becomes_none(self, analyzer, genai_client, staged):
        genai_client.aio.models.generate_content.return_value = MagicMock(
            text='{"description": "Silent clip", "transcript": "", "scenes": ["only scene"]}'
        )
        result = asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert result.transcript is None
        assert result.scenes == ["only scene"]

    def test_delete_failure_does_not_fail_analysis(self, analyzer, genai_client, staged):
        genai_client.aio.files.delete.side_effect = errors.APIError(404, {"error": {"message": "not found"}})
        result = asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert result.description == "A product demo"

    @pytest.mark.parametrize("error", [httpx.ConnectError("reset"), RuntimeError("event loop closed")])
    def test_delete_transport_failure_does_not_fail_analysis(self, analyzer, genai_client, staged, error):
        genai_client.aio.files.delete.side_effect = error
        result = asyncio.run(analyzer.analyze(staged, "video/mp4", "video"))
        assert result.scenes == ["intro", "demo", "outro"]
        genai_client.aio.files.delete.assert_awaited_once_with(name="files/abc123")


class TestAnalyzeImage:
    def test_returns_image_analysis(self, analyzer, genai_client, staged):
        genai_client.aio.models.generate_content.return_value = MagicMock(text=GEMINI_IMAGE_JSON)
        result = asyncio.run(analyzer.analyze(staged, "image/png", "image"))
        assert isinstance(result, ImageAnalysis)
        assert result.description == "A red sneaker on a white backdrop"
        assert result.ad_copy == ["Run louder.", "Built for the streets."]
        assert result.visual_elements == ["red sneaker", "white backdrop"]

    def test_sends_bytes_inline(self, analyzer, genai_client, staged):
        genai_client.aio.models.generate_content.return_value = MagicMock(text=GEMINI_IMAGE_JSON)
        asyncio.run(analyzer.analyze(staged, "image/png", "image"))
        genai_client.aio.files.upload.assert_not_awaited()
        part = genai_client.aio.models.generate_content.await_args.kwargs["contents"][0]
        assert part.inline_data.data == b"media-bytes"
        assert part.inline_data.mime_type == "image/png"

    def test_optional_fields_may_be_missing(self, analyzer, genai_client, staged):
        genai_client.aio.models.generate_content.return_value = MagicMock(text='{"description": "Logo"}')
        result = asyncio.run(analyzer.analyze(staged, "image/png", "image"))
        assert result.ad_copy is None
        assert result.visual_elements is None


class TestFailures:
    @pytest.mark.parametrize("text", [None, "", "not json", '{"transcript": "no description"}'])
    def test_unusable_payload(self, analyzer, genai_client, staged, text):
        genai_client.aio.models.generate_content.return_value = MagicMock(text=text)
        with pytest.raises(AnalysisFailure):
            asyncio.run(analyzer.analyze(staged, "image/png", "image"))

    def test_api_error(self, analyzer, genai_client, staged):
        genai_client.aio.models.generate_content.side_effect = errors.APIError(
            503, {"error": {"message": "model overloaded", "status": "UNAVAILABLE"}}
        )
        with pytest.raises(AnalysisFailure, match="model overloaded"):
            asyncio.run(analyzer.analyze(staged, "image/png", "image"))

    def test_missing_api_key(self, monkeypatch, staged):
        monkeypatch.setenv("GEMINI_API_KEY", "")
        get_settings.cache_clear()
        with pytest.raises(AnalysisFailure, match="GEMINI_API_KEY"):
            asyncio.run(GeminiAnalyzer().analyze(staged, "image/png", "image"))
