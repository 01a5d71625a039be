import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from adscope.config import get_settings
from adscope.models.analysis import CopyResult, ImageAnalysis, VideoAnalysis
from adscope.services.pipeline import MediaPipeline, get_pipeline
from adscope.services.result_store import get_result_store
from adscope.services.staging import MediaStager, StagingRoot, get_stager


# --- Canned provider responses ---

VIDEO_ANALYSIS = VideoAnalysis(
    description="A product demo",
    transcript="Hello world",
    scenes=["intro", "demo", "outro"],
)

IMAGE_ANALYSIS = ImageAnalysis(
    description="A red sneaker on a white backdrop",
    ad_copy=["Run louder.", "Built for the streets."],
    visual_elements=["red sneaker", "white backdrop"],
)

COPY_RESULT = CopyResult(headline="Meet the Demo", description="See it in action.")

GEMINI_VIDEO_JSON = '{"description": "A product demo", "transcript": "Hello world", "scenes": ["intro", "demo", "outro"]}'

GEMINI_IMAGE_JSON = (
    '{"description": "A red sneaker on a white backdrop", '
    '"ad_copy": ["Run louder.", "Built for the streets."], '
    '"visual_elements": ["red sneaker", "white backdrop"]}'
)

ANTHROPIC_MESSAGE = {
    "id": "msg_01",
    "type": "message",
    "role": "assistant",
    "content": [
        {"type": "text", "text": '{"headline": "Meet the Demo", "description": "See it in action."}'},
    ],
}


def _clear_caches():
    get_settings.cache_clear()
    get_stager.cache_clear()
    get_pipeline.cache_clear()
    get_result_store.cache_clear()


@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    """Point every setting at throwaway locations with fake API keys."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-anthropic-key")
    monkeypatch.setenv("STAGING_DIR", str(tmp_path / "staging"))
    monkeypatch.setenv("RESULTS_FILE", str(tmp_path / "saved_results.json"))
    monkeypatch.setenv("GEMINI_POLL_INTERVAL", "0")
    monkeypatch.delenv("VERCEL", raising=False)
    monkeypatch.delenv("AWS_LAMBDA_FUNCTION_NAME", raising=False)
    _clear_caches()
    yield
    _clear_caches()


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "stage"


@pytest.fixture
def stager(staging_dir):
    return MediaStager(StagingRoot(staging_dir))


@pytest.fixture
def analyzer():
    mock = MagicMock()
    mock.analyze = AsyncMock(return_value=VIDEO_ANALYSIS)
    return mock


@pytest.fixture
def copywriter():
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=COPY_RESULT)
    return mock


@pytest.fixture
def pipeline(stager, analyzer, copywriter):
    """Pipeline with real staging and mocked providers."""
    return MediaPipeline(stager, analyzer, copywriter)


@pytest.fixture
def api_client():
    """FastAPI TestClient for router tests."""
    from adscope.main import api
    return TestClient(api)


def staged_files(staging_dir):
    if not staging_dir.exists():
        return []
    return list(staging_dir.iterdir())
