from typing import Annotated, Union

from pydantic import Field, TypeAdapter

from adscope.models.analysis import ImageAnalysis, VideoAnalysis


class SavedVideoResult(VideoAnalysis):
    id: str
    created_at: int  # ms since epoch
    source_file_name: str


class SavedImageResult(ImageAnalysis):
    id: str
    created_at: int  # ms since epoch
    source_file_name: str


SavedResult = Annotated[Union[SavedVideoResult, SavedImageResult], Field(discriminator="kind")]

saved_results_adapter = TypeAdapter(list[SavedResult])


def to_saved(
    analysis: VideoAnalysis | ImageAnalysis, id: str, created_at: int, source_file_name: str
) -> SavedVideoResult | SavedImageResult:
    saved_cls = SavedVideoResult if analysis.kind == "video" else SavedImageResult
    return saved_cls(
        **analysis.model_dump(),
        id=id,
        created_at=created_at,
        source_file_name=source_file_name,
    )
