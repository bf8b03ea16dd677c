import logging
from typing import Optional

from google.genai import errors

from swingcoach.services.exceptions import GenerationError
from swingcoach.services.gemini_service import GeminiService
from swingcoach.services.models import MediaReference, StagedFile
from swingcoach.utils.retry import FallbackPolicy, Sleep, default_sleep

logger = logging.getLogger(__name__)

# Upstream status codes that are passed through to the caller as-is
_PASSTHROUGH_STATUS_CODES = {413, 504}


class GenerationInvoker:
    """
    Runs the analysis prompt against the primary model tier, falling back once.
    """

    def __init__(
        self,
        gemini: GeminiService,
        policy: FallbackPolicy = FallbackPolicy(),
        sleep: Sleep = default_sleep,
    ):
        self.gemini = gemini
        self.policy = policy
        self.sleep = sleep

    async def analyze(self, media: MediaReference, prompt: str, request_id: str = "-") -> str:
        """
        Generate the swing analysis text for the given media.

        Each tier in ``policy.models`` is tried once, in order, with
        ``policy.backoff_seconds`` between attempts.

        :param media: Inline bytes or an ACTIVE staged file.
        :param prompt: The fixed analysis prompt.
        :return: The model's text, unmodified.
        :raises GenerationError: If every tier failed.
        """
        if isinstance(media, StagedFile) and (not media.uri or not media.media_type):
            raise GenerationError("The processed file has no URI or media type.")

        contents = self.gemini.build_contents(prompt, media)
        last_error: Optional[Exception] = None

        for index, model in enumerate(self.policy.models):
            if index > 0:
                logger.info(
                    f"[{request_id}] Retrying with {model} in {self.policy.backoff_seconds}s"
                )
                await self.sleep(self.policy.backoff_seconds)
            try:
                logger.info(f"[{request_id}] Starting analysis with {model}")
                text = await self.gemini.generate(model, contents)
                if not text:
                    raise ValueError(f"{model} returned an empty response")
                logger.info(f"[{request_id}] Analysis with {model} succeeded")
                return text
            except Exception as e:
                logger.warning(f"[{request_id}] Model {model} failed: {e}")
                last_error = e

        logger.error(f"[{request_id}] All model tiers failed")
        raise GenerationError(
            f"Gemini analysis failed: {last_error}",
            status_code=self._status_for(last_error),
        ) from last_error

    @staticmethod
    def _status_for(error: Optional[Exception]) -> int:
        if isinstance(error, errors.APIError) and error.code in _PASSTHROUGH_STATUS_CODES:
            return error.code
        return GenerationError.status_code
