"""Gemini media analysis service: describes an uploaded video or image."""

import asyncio
import json
import logging

from google import genai
from google.genai import errors, types
from pydantic import BaseModel, Field, ValidationError

from adscope.config import get_settings
from adscope.exceptions import AnalysisFailure
from adscope.models.analysis import ImageAnalysis, MediaKind, VideoAnalysis
from adscope.services.staging import StagedMedia

logger = logging.getLogger(__name__)

VIDEO_PROMPT = """Watch this video and return a JSON object with:
- "description": a detailed description of what the video shows, who it is for and what it promotes
- "transcript": a verbatim transcript of everything spoken, or an empty string if nothing is said
- "scenes": an ordered list with one short summary per scene, in the order the scenes appear"""

IMAGE_PROMPT = """Study this image as a marketing asset and return a JSON object with:
- "description": a detailed description of the image and the product or message it conveys
- "ad_copy": three to five short ad copy lines that could accompany the image
- "visual_elements": the notable visual elements (subjects, colors, text, composition)"""


class _VideoPayload(BaseModel):
    description: str
    transcript: str | None = None
    scenes: list[str] = Field(default_factory=list)


class _ImagePayload(BaseModel):
    description: str
    ad_copy: list[str] | None = None
    visual_elements: list[str] | None = None


def _get_client() -> genai.Client:
    api_key = get_settings().gemini_api_key
    if not api_key:
        raise AnalysisFailure(
            "Gemini API key not configured. Get one at "
            "https://aistudio.google.com/apikey and set GEMINI_API_KEY in .env"
        )
    return genai.Client(api_key=api_key)


def _json_config(schema: type[BaseModel]) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=schema,
    )


def _parse_payload(text: str | None, schema: type[BaseModel]) -> BaseModel:
    if not text:
        raise AnalysisFailure("Gemini returned an empty response")
    try:
        return schema.model_validate_json(text)
    except (ValidationError, json.JSONDecodeError) as e:
        raise AnalysisFailure(f"Gemini returned an unparseable response: {e}") from e


class GeminiAnalyzer:
    """Analysis adapter backed by the Gemini API."""

    def __init__(
        self,
        client: genai.Client | None = None,
        model: str | None = None,
        poll_interval: float | None = None,
        poll_attempts: int | None = None,
    ):
        settings = get_settings()
        self._client = client
        self.model = model or settings.gemini_model
        self.poll_interval = settings.gemini_poll_interval if poll_interval is None else poll_interval
        self.poll_attempts = poll_attempts or settings.gemini_poll_attempts

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = _get_client()
        return self._client

    async def analyze(
        self, media: StagedMedia, mime_type: str, kind: MediaKind
    ) -> VideoAnalysis | ImageAnalysis:
        try:
            if kind == "video":
                return await self._analyze_video(media, mime_type)
            return await self._analyze_image(media, mime_type)
        except errors.APIError as e:
            raise AnalysisFailure(f"Gemini API error ({e.code}): {e.message}") from e

    async def _analyze_video(self, media: StagedMedia, mime_type: str) -> VideoAnalysis:
        client = self.client
        # Videos must be uploaded via the File API, then referenced in generation
        uploaded_file = await client.aio.files.upload(
            file=str(media.path),
            config=types.UploadFileConfig(mime_type=mime_type),
        )
        try:
            await self._wait_until_active(uploaded_file.name)
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[uploaded_file, VIDEO_PROMPT],
                config=_json_config(_VideoPayload),
            )
        finally:
            try:
                await client.aio.files.delete(name=uploaded_file.name)
            except Exception as e:
                logger.warning(
                    "gemini_file_delete_failed",
                    extra={"file": uploaded_file.name, "error": str(e)},
                )

        payload = _parse_payload(response.text, _VideoPayload)
        return VideoAnalysis(
            description=payload.description,
            transcript=payload.transcript or None,
            scenes=payload.scenes,
        )

    async def _wait_until_active(self, name: str) -> None:
        for _ in range(self.poll_attempts):
            status = await self.client.aio.files.get(name=name)
            if status.state == "ACTIVE":
                return
            if status.state == "FAILED":
                raise AnalysisFailure("Gemini could not process the uploaded video")
            await asyncio.sleep(self.poll_interval)
        raise AnalysisFailure("Gemini file upload timed out waiting for ACTIVE state")

    async def _analyze_image(self, media: StagedMedia, mime_type: str) -> ImageAnalysis:
        # Images can be sent inline as bytes
        data = await asyncio.to_thread(media.path.read_bytes)
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=data, mime_type=mime_type),
                IMAGE_PROMPT,
            ],
            config=_json_config(_ImagePayload),
        )
        payload = _parse_payload(response.text, _ImagePayload)
        return ImageAnalysis(
            description=payload.description,
            ad_copy=payload.ad_copy,
            visual_elements=payload.visual_elements,
        )
