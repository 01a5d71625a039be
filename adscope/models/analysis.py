from dataclasses import dataclass
from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from adscope.models.common import CamelModel

MediaKind = Literal["video", "image"]


class CopyResult(CamelModel):
    headline: str
    description: str


class VideoAnalysis(CamelModel):
    kind: Literal["video"] = "video"
    description: str
    transcript: str | None = None
    scenes: list[str] = Field(default_factory=list)
    copy_result: CopyResult | None = None


class ImageAnalysis(CamelModel):
    kind: Literal["image"] = "image"
    description: str
    ad_copy: list[str] | None = None
    visual_elements: list[str] | None = None
    copy_result: CopyResult | None = None


AnalysisResult = Annotated[Union[VideoAnalysis, ImageAnalysis], Field(discriminator="kind")]

_analysis_adapter = TypeAdapter(AnalysisResult)


@dataclass(frozen=True)
class MediaAnalysisRequest:
    """One uploaded file as received at the request boundary."""

    data: bytes | None
    mime_type: str | None
    filename: str = "upload"


def media_kind(mime_type: str | None) -> MediaKind | None:
    """Map a declared MIME type to a pipeline kind, or None if unsupported."""
    if not mime_type:
        return None
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("image/"):
        return "image"
    return None


def parse_analysis(payload: dict) -> VideoAnalysis | ImageAnalysis:
    """Validate a result payload, tagging untagged payloads by their shape.

    Payloads produced before results carried a ``kind`` are video results
    when they have a transcript or scenes, image results otherwise.
    """
    if "kind" not in payload:
        kind = "video" if "transcript" in payload or "scenes" in payload else "image"
        payload = {**payload, "kind": kind}
    return _analysis_adapter.validate_python(payload)
