"""Media analysis pipeline: validate, stage, analyze, enrich, clean up, respond."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Protocol

from adscope.exceptions import AnalysisFailure, CleanupFailure, EnrichmentFailure, InputRejected, StagingFailure
from adscope.models.analysis import (
    CopyResult,
    ImageAnalysis,
    MediaAnalysisRequest,
    MediaKind,
    VideoAnalysis,
    media_kind,
)
from adscope.services.staging import MediaStager, StagedMedia, get_stager

logger = logging.getLogger(__name__)


class MediaAnalyzer(Protocol):
    async def analyze(
        self, media: StagedMedia, mime_type: str, kind: MediaKind
    ) -> VideoAnalysis | ImageAnalysis: ...


class Copywriter(Protocol):
    async def generate(
        self,
        description: str,
        transcript: str | None = None,
        scenes: list[str] | None = None,
    ) -> CopyResult: ...


class PipelineState(str, Enum):
    VALIDATING = "validating"
    STAGED = "staged"
    ANALYZING = "analyzing"
    ENRICHING = "enriching"
    CLEANING = "cleaning"
    RESPONDING = "responding"
    REJECTED_INPUT = "rejected_input"
    FAILED = "failed"


@dataclass(frozen=True)
class Enrichment:
    """Outcome of the best-effort copy step: the copy, or why there is none."""

    copy: CopyResult | None = None
    diagnostic: str | None = None


@dataclass(frozen=True)
class PipelineReport:
    result: VideoAnalysis | ImageAnalysis
    enrichment: Enrichment


class MediaPipeline:
    def __init__(self, stager: MediaStager, analyzer: MediaAnalyzer, copywriter: Copywriter):
        self.stager = stager
        self.analyzer = analyzer
        self.copywriter = copywriter

    async def analyze(self, request: MediaAnalysisRequest) -> VideoAnalysis | ImageAnalysis:
        """Run the pipeline and return only the composed result."""
        report = await self.run(request)
        return report.result

    async def run(self, request: MediaAnalysisRequest) -> PipelineReport:
        _transition(PipelineState.VALIDATING, request)
        kind = _validate(request)

        # Nothing is staged if this fails, so there is nothing to clean up
        try:
            media = await asyncio.to_thread(self.stager.stage, request.data, request.filename)
        except StagingFailure:
            _transition(PipelineState.FAILED, request)
            raise
        _transition(PipelineState.STAGED, request)

        try:
            _transition(PipelineState.ANALYZING, request)
            base = await self._analyze(media, request.mime_type, kind)
            _transition(PipelineState.ENRICHING, request)
            enrichment = await self._enrich(base)
        except AnalysisFailure:
            _transition(PipelineState.FAILED, request)
            raise
        finally:
            _transition(PipelineState.CLEANING, request)
            self._cleanup(media)

        _transition(PipelineState.RESPONDING, request)
        result = base
        if enrichment.copy is not None:
            result = base.model_copy(update={"copy_result": enrichment.copy})
        return PipelineReport(result=result, enrichment=enrichment)

    async def _analyze(
        self, media: StagedMedia, mime_type: str, kind: MediaKind
    ) -> VideoAnalysis | ImageAnalysis:
        try:
            result = await self.analyzer.analyze(media, mime_type, kind)
        except AnalysisFailure:
            raise
        except Exception as e:
            raise AnalysisFailure(f"Media analysis failed: {e}") from e
        if result.kind != kind:
            raise AnalysisFailure(f"Analysis returned a {result.kind} result for {kind} media")
        return result

    async def _enrich(self, base: VideoAnalysis | ImageAnalysis) -> Enrichment:
        try:
            if isinstance(base, VideoAnalysis):
                copy = await self.copywriter.generate(base.description, base.transcript, base.scenes)
            else:
                copy = await self.copywriter.generate(base.description)
        except Exception as e:
            failure = e if isinstance(e, EnrichmentFailure) else EnrichmentFailure(f"Copy generation failed: {e}")
            logger.warning(
                "copy_generation_failed",
                extra={"error": str(failure), "error_type": type(e).__name__},
            )
            return Enrichment(diagnostic=str(failure))
        return Enrichment(copy=copy)

    def _cleanup(self, media: StagedMedia) -> None:
        try:
            self.stager.release(media)
        except CleanupFailure as e:
            logger.error("staged_media_cleanup_failed", extra={"path": str(media.path), "error": str(e)})


def _validate(request: MediaAnalysisRequest) -> MediaKind:
    if request.data is None:
        _transition(PipelineState.REJECTED_INPUT, request)
        raise InputRejected("No media file provided")
    kind = media_kind(request.mime_type)
    if kind is None:
        _transition(PipelineState.REJECTED_INPUT, request)
        raise InputRejected("File must be a video or image")
    return kind


def _transition(state: PipelineState, request: MediaAnalysisRequest) -> None:
    logger.debug(
        "pipeline_state",
        extra={"state": state.value, "file_name": request.filename, "mime_type": request.mime_type},
    )


@lru_cache
def get_pipeline() -> MediaPipeline:
    from adscope.services.copywriter import AnthropicCopywriter
    from adscope.services.gemini import GeminiAnalyzer

    return MediaPipeline(get_stager(), GeminiAnalyzer(), AnthropicCopywriter())
