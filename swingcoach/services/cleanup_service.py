import logging
from typing import Optional

from google.genai import errors

from swingcoach.services.gemini_service import GeminiService
from swingcoach.services.models import StagedFile, TempFileHandle
from swingcoach.services.temp_file_service import TempFileStore

logger = logging.getLogger(__name__)


class CleanupCoordinator:
    """
    Releases the per-request local and remote file state.

    Never raises: a failed delete is logged and the primary result or error
    of the request stands.
    """

    def __init__(self, temp_store: TempFileStore, gemini: Optional[GeminiService] = None):
        self.temp_store = temp_store
        self.gemini = gemini

    async def run(
        self,
        staged_file: Optional[StagedFile],
        temp_handle: Optional[TempFileHandle],
        request_id: str = "-",
    ) -> None:
        if staged_file is not None:
            await self._delete_remote(staged_file, request_id)
        if temp_handle is not None:
            await self._delete_local(temp_handle, request_id)
        logger.info(f"[{request_id}] Cleanup complete")

    async def _delete_remote(self, staged_file: StagedFile, request_id: str) -> None:
        if not staged_file.name:
            return
        if self.gemini is None:
            logger.warning(
                f"[{request_id}] Skipping remote delete of {staged_file.name}: no API credential"
            )
            return
        try:
            await self.gemini.delete_file(staged_file.name)
            logger.info(f"[{request_id}] Deleted remote file: {staged_file.name}")
        except errors.ClientError as e:
            if e.code == 404:
                logger.info(f"[{request_id}] Remote file already absent: {staged_file.name}")
            else:
                logger.error(f"[{request_id}] Failed to delete remote file {staged_file.name}: {e}")
        except Exception as e:
            logger.error(f"[{request_id}] Failed to delete remote file {staged_file.name}: {e}")

    async def _delete_local(self, temp_handle: TempFileHandle, request_id: str) -> None:
        try:
            await self.temp_store.delete(temp_handle)
        except Exception as e:
            logger.error(f"[{request_id}] Failed to delete temp file {temp_handle.path}: {e}")
