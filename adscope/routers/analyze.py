from fastapi import APIRouter, File, UploadFile

from adscope.models.analysis import AnalysisResult, MediaAnalysisRequest
from adscope.models.common import ErrorResponse
from adscope.services import pipeline as pipeline_service

router = APIRouter(prefix="/api", tags=["analyze"])


@router.post(
    "/analyze",
    response_model=AnalysisResult,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze(media: UploadFile | None = File(None, description="Video or image to analyze")):
    if media is None:
        request = MediaAnalysisRequest(data=None, mime_type=None)
    else:
        request = MediaAnalysisRequest(
            data=await media.read(),
            mime_type=media.content_type,
            filename=media.filename or "upload",
        )
    return await pipeline_service.get_pipeline().analyze(request)
