import importlib
import logging
import os

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from swingcoach.configs.config import get_settings
from swingcoach.middleware.request_id_middleware import REQUEST_ID_HEADER, RequestIdMiddleware
from swingcoach.schemas.analysis import AnalysisResponse
from swingcoach.services.exceptions import AnalysisError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Golf Swing Coach")

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],  # Allow all HTTP methods
    allow_headers=["*"],  # Allow all headers
)
app.add_middleware(RequestIdMiddleware)

# For automatic route registration
routes_dir = os.path.join(os.path.dirname(__file__), "routes")
route_files = [file for file in os.listdir(routes_dir) if file.endswith(".py")]
for file in sorted(route_files):
    module = importlib.import_module(f"swingcoach.routes.{file[:-3]}")

    if hasattr(module, "router") and isinstance(module.router, APIRouter):
        app.include_router(module.router)


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    request_id = getattr(request.state, "request_id", "-")
    logger.warning(f"[{request_id}] {type(exc).__name__}: {exc.message}")
    response = AnalysisResponse.from_error(exc)
    return JSONResponse(
        status_code=response.status_code, content=response.model_dump(exclude_none=True)
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "-")
    logger.error(f"[{request_id}] Unhandled error: {exc}", exc_info=True)
    response = AnalysisResponse.failure("Analysis failed: internal error", 500)
    # Runs outside RequestIdMiddleware, so the header is set here
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(exclude_none=True),
        headers={REQUEST_ID_HEADER: request_id},
    )


@app.get("/")
async def root():
    return {"message": "Healthcheck Passed"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
