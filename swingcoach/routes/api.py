import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from google import genai

from swingcoach.configs.config import Settings, get_settings
from swingcoach.schemas.analysis import AnalysisResponse, AnalyzeEndpointInfo
from swingcoach.services.analysis_service import AnalysisOrchestrator, build_orchestrator
from swingcoach.services.dispatch_service import to_megabytes
from swingcoach.services.gemini_service import build_client
from swingcoach.services.input_handle_service import parse_upload_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])


def get_gemini_client(settings: Settings = Depends(get_settings)) -> genai.Client:
    return build_client(settings)


def get_orchestrator(
    settings: Settings = Depends(get_settings),
    client: genai.Client = Depends(get_gemini_client),
) -> AnalysisOrchestrator:
    return build_orchestrator(settings, client)


@router.post("/analyze", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_swing(
    request: Request,
    settings: Settings = Depends(get_settings),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Analyze a golf swing video.

    Accepts a multipart form with a ``file`` field, or JSON with ``fileBase64``
    (or ``videoBase64``). Always answers with a JSON body carrying ``success``.
    """
    upload = await parse_upload_request(request, settings)
    response = await orchestrator.handle(upload)
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(exclude_none=True),
    )


@router.get("/analyze", response_model=AnalyzeEndpointInfo)
async def describe_analyze(settings: Settings = Depends(get_settings)):
    return AnalyzeEndpointInfo(
        message="Golf swing analysis API - POST a video to /api/analyze",
        endpoint="/api/analyze",
        method="POST",
        maxFileSize=f"{to_megabytes(settings.MAX_UPLOAD_SIZE):.0f}MB",
        inlineSizeLimit=f"{to_megabytes(settings.INLINE_SIZE_LIMIT):.0f}MB",
        models={
            "primary": settings.GEMINI_PRIMARY_MODEL,
            "fallback": settings.GEMINI_FALLBACK_MODEL,
        },
        body={
            "file": "multipart/form-data video file",
            "fileBase64": "JSON string, base64 encoded video (alias: videoBase64)",
            "mimeType": "optional JSON string, media type of the base64 video",
            "fileName": "optional JSON string, original file name",
        },
    )
