import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from google import genai

from swingcoach.configs.config import Settings
from swingcoach.schemas.analysis import AnalysisResponse, FileInfo
from swingcoach.services.cleanup_service import CleanupCoordinator
from swingcoach.services.dispatch_service import choose_strategy, to_megabytes
from swingcoach.services.exceptions import AnalysisError, RequestTimeoutError
from swingcoach.services.gemini_service import GeminiService
from swingcoach.services.generation_service import GenerationInvoker
from swingcoach.services.models import (
    AnalysisResult,
    InlineMedia,
    MediaReference,
    RequestContext,
    RequestState,
    Strategy,
    UploadRequest,
)
from swingcoach.services.staging_service import StageUploader
from swingcoach.services.temp_file_service import TempFileStore
from swingcoach.utils.prompts import build_analysis_prompt
from swingcoach.utils.retry import FallbackPolicy, PollPolicy

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """
    Runs one swing-video analysis request from validation to cleanup.

    Per-request states: RECEIVED -> VALIDATED -> INLINE_PROCESSING or
    (STAGED_UPLOADING -> STAGED_POLLING) -> INVOKING -> SUCCEEDED or FAILED
    -> CLEANED_UP. Cleanup runs before the response is returned on every path.
    """

    def __init__(
        self,
        temp_store: TempFileStore,
        uploader: StageUploader,
        invoker: GenerationInvoker,
        cleanup: CleanupCoordinator,
        prompt: str,
        inline_limit: int,
        max_size: int,
        request_timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.temp_store = temp_store
        self.uploader = uploader
        self.invoker = invoker
        self.cleanup = cleanup
        self.prompt = prompt
        self.inline_limit = inline_limit
        self.max_size = max_size
        self.request_timeout = request_timeout
        self.clock = clock

    async def handle(
        self, upload: UploadRequest, context: Optional[RequestContext] = None
    ) -> AnalysisResponse:
        if context is None:
            context = RequestContext(request_id=upload.request_id)
        started = self.clock()
        logger.info(
            f"[{upload.request_id}] Received {upload.original_name} "
            f"({to_megabytes(upload.size):.1f}MB, {upload.media_type})"
        )

        try:
            result = await asyncio.wait_for(
                self._process(upload, context, started), timeout=self.request_timeout
            )
            self._advance(context, RequestState.SUCCEEDED)
            logger.info(
                f"[{upload.request_id}] Analysis complete in {result.elapsed_seconds:.1f}s "
                f"({result.method.value})"
            )
            response = AnalysisResponse(
                success=True,
                analysis=result.text,
                fileInfo=FileInfo(
                    originalName=upload.original_name,
                    originalSize=f"{to_megabytes(upload.size):.1f}MB",
                    processingTime=f"{result.elapsed_seconds:.1f}s",
                    method=result.method.value,
                ),
            )
        except asyncio.TimeoutError:
            self._advance(context, RequestState.FAILED)
            error = RequestTimeoutError(
                f"Processing timed out after {self.request_timeout:.0f}s. "
                "Please retry with a smaller file."
            )
            logger.error(
                f"[{upload.request_id}] {error.message} "
                f"(state: {context.history[-2].value})"
            )
            response = AnalysisResponse.from_error(error)
        except AnalysisError as e:
            self._advance(context, RequestState.FAILED)
            logger.error(
                f"[{upload.request_id}] {type(e).__name__} during "
                f"{context.history[-2].value}: {e.message}"
            )
            response = AnalysisResponse.from_error(e)
        except Exception as e:
            self._advance(context, RequestState.FAILED)
            logger.error(f"[{upload.request_id}] Unexpected error: {e}", exc_info=True)
            response = AnalysisResponse.failure("Analysis failed: internal error", 500)
        finally:
            await self.cleanup.run(context.staged_file, context.temp_handle, upload.request_id)
            self._advance(context, RequestState.CLEANED_UP)

        return response

    async def _process(
        self, upload: UploadRequest, context: RequestContext, started: float
    ) -> AnalysisResult:
        strategy = choose_strategy(upload.size, self.inline_limit, self.max_size)
        context.strategy = strategy
        self._advance(context, RequestState.VALIDATED)

        await self._settle_into(
            context,
            "temp_handle",
            self.temp_store.save(upload.payload, upload.request_id, upload.original_name),
        )

        media: MediaReference
        if strategy == Strategy.INLINE:
            self._advance(context, RequestState.INLINE_PROCESSING)
            data = await self.temp_store.read(context.temp_handle)
            media = InlineMedia(data=data, media_type=upload.media_type)
        else:
            self._advance(context, RequestState.STAGED_UPLOADING)
            await self._settle_into(
                context,
                "staged_file",
                self.uploader.upload(
                    context.temp_handle, upload.media_type, upload.original_name
                ),
            )
            self._advance(context, RequestState.STAGED_POLLING)
            context.staged_file = await self.uploader.wait_until_active(
                context.staged_file, upload.request_id
            )
            media = context.staged_file

        self._advance(context, RequestState.INVOKING)
        text = await self.invoker.analyze(media, self.prompt, upload.request_id)
        return AnalysisResult(
            text=text, method=strategy, elapsed_seconds=self.clock() - started
        )

    @staticmethod
    async def _settle_into(
        context: RequestContext, attribute: str, step: Awaitable[Any]
    ) -> Any:
        """
        Run a step that creates a file and record its result on the context.

        The step is shielded from the request deadline: when the request is
        cancelled the step still runs to completion and its result is recorded
        before the cancellation propagates, so cleanup can release it.
        """
        task = asyncio.ensure_future(step)
        try:
            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is None:
                setattr(context, attribute, task.result())
            raise
        setattr(context, attribute, result)
        return result

    @staticmethod
    def _advance(context: RequestContext, state: RequestState) -> None:
        context.advance(state)
        logger.debug(f"[{context.request_id}] -> {state.value}")


def build_orchestrator(settings: Settings, client: genai.Client) -> AnalysisOrchestrator:
    gemini = GeminiService(client, max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS)
    temp_store = TempFileStore(settings.TEMP_DIR)
    uploader = StageUploader(
        gemini,
        PollPolicy(
            max_attempts=settings.PROCESSING_MAX_ATTEMPTS,
            interval_seconds=settings.PROCESSING_POLL_INTERVAL_SECONDS,
        ),
    )
    invoker = GenerationInvoker(
        gemini,
        FallbackPolicy(
            models=(settings.GEMINI_PRIMARY_MODEL, settings.GEMINI_FALLBACK_MODEL),
            backoff_seconds=settings.FALLBACK_BACKOFF_SECONDS,
        ),
    )
    return AnalysisOrchestrator(
        temp_store=temp_store,
        uploader=uploader,
        invoker=invoker,
        cleanup=CleanupCoordinator(temp_store, gemini),
        prompt=build_analysis_prompt(settings.ANALYSIS_LANGUAGE),
        inline_limit=settings.INLINE_SIZE_LIMIT,
        max_size=settings.MAX_UPLOAD_SIZE,
        request_timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )
