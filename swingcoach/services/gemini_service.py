import asyncio
import logging
from typing import Any, List, Optional

from google import genai
from google.genai import types

from swingcoach.configs.config import Settings
from swingcoach.services.exceptions import ConfigurationError
from swingcoach.services.models import FileState, InlineMedia, MediaReference, StagedFile

logger = logging.getLogger(__name__)

_REMOTE_STATE_MAP = {
    "ACTIVE": FileState.ACTIVE,
    "FAILED": FileState.FAILED,
    "PROCESSING": FileState.PENDING,
    "STATE_UNSPECIFIED": FileState.PENDING,
}


def build_client(settings: Settings) -> genai.Client:
    """
    Construct the Gemini API client from settings.

    :raises ConfigurationError: If GEMINI_API_KEY is not set.
    """
    if not settings.GEMINI_API_KEY:
        raise ConfigurationError("GEMINI_API_KEY is not configured.")

    http_options = None
    if settings.GEMINI_HTTP_TIMEOUT_SECONDS:
        http_options = types.HttpOptions(
            timeout=int(settings.GEMINI_HTTP_TIMEOUT_SECONDS * 1000)
        )
    return genai.Client(api_key=settings.GEMINI_API_KEY, http_options=http_options)


def _remote_state_name(state: Any) -> Optional[str]:
    if state is None:
        return None
    return str(getattr(state, "value", state))


def to_staged_file(remote_file: Any) -> StagedFile:
    """Convert a google.genai File into a StagedFile snapshot."""
    remote_state = _remote_state_name(getattr(remote_file, "state", None))
    error = getattr(remote_file, "error", None)
    error_detail = None
    if error is not None:
        error_detail = getattr(error, "message", None) or str(error)
    return StagedFile(
        name=remote_file.name,
        uri=getattr(remote_file, "uri", None),
        media_type=getattr(remote_file, "mime_type", None),
        state=_REMOTE_STATE_MAP.get(remote_state or "STATE_UNSPECIFIED", FileState.FAILED),
        error=error_detail,
        remote_state=remote_state,
    )


class GeminiService:
    """
    Async wrapper around an explicitly constructed google.genai client.

    SDK calls are blocking, so each one runs in a worker thread.
    """

    def __init__(self, client: genai.Client, max_output_tokens: Optional[int] = None):
        self.client = client
        self.max_output_tokens = max_output_tokens

    async def upload_file(self, path: str, media_type: str, display_name: str) -> Any:
        return await asyncio.to_thread(
            self.client.files.upload,
            file=path,
            config=types.UploadFileConfig(mime_type=media_type, display_name=display_name),
        )

    async def get_file(self, name: str) -> Any:
        return await asyncio.to_thread(self.client.files.get, name=name)

    async def delete_file(self, name: str) -> None:
        await asyncio.to_thread(self.client.files.delete, name=name)

    @staticmethod
    def build_contents(prompt: str, media: MediaReference) -> List[types.Part]:
        if isinstance(media, InlineMedia):
            media_part = types.Part.from_bytes(data=media.data, mime_type=media.media_type)
        else:
            media_part = types.Part.from_uri(file_uri=media.uri, mime_type=media.media_type)
        return [types.Part.from_text(text=prompt), media_part]

    async def generate(self, model: str, contents: List[types.Part]) -> Optional[str]:
        """
        Run a single generate_content call against the given model.

        :return: The response text, or None when the model returned no text.
        """
        config = None
        if self.max_output_tokens:
            config = types.GenerateContentConfig(max_output_tokens=self.max_output_tokens)
        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=model,
            contents=contents,
            config=config,
        )
        return response.text
