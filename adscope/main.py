import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from adscope.config import get_settings
from adscope.exceptions import InputRejected, IntegrationError, StagingFailure
from adscope.models.common import ProviderStatus, StatusResponse
from adscope.routers.analyze import router as analyze_router
from adscope.services.staging import get_stager

logger = logging.getLogger(__name__)


# --- FastAPI app ---

api = FastAPI(title="Adscope", version="0.1.0")
api.include_router(analyze_router)


@api.get("/api/status")
def api_status() -> StatusResponse:
    settings = get_settings()
    root = get_stager().root
    return StatusResponse(
        providers={
            "gemini": ProviderStatus(configured=bool(settings.gemini_api_key), model=settings.gemini_model),
            "anthropic": ProviderStatus(configured=bool(settings.anthropic_api_key), model=settings.anthropic_model),
        },
        staging_root=str(root.path),
        staging_root_fixed=root.fixed,
    )


# --- Exception handlers ---

@api.exception_handler(InputRejected)
async def input_rejected_handler(request: Request, exc: InputRejected):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@api.exception_handler(StagingFailure)
async def staging_failure_handler(request: Request, exc: StagingFailure):
    logger.error("staging_failed", extra={"error": str(exc)})
    return JSONResponse(status_code=500, content={"error": str(exc)})


@api.exception_handler(IntegrationError)
async def integration_error_handler(request: Request, exc: IntegrationError):
    logger.error("media_processing_failed", extra={"error": str(exc), "error_type": type(exc).__name__})
    return JSONResponse(status_code=500, content={"error": str(exc) or "Failed to process media"})


@api.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": f"Invalid upload: {message}"})


@api.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("unexpected_error", extra={"error_type": type(exc).__name__}, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Failed to process media"})


def run():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        "adscope.main:api",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
