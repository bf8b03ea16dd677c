import logging
import os
from dataclasses import replace

from swingcoach.services.exceptions import (
    ProcessingFailedError,
    ProcessingTimeoutError,
    StagingError,
)
from swingcoach.services.gemini_service import GeminiService, to_staged_file
from swingcoach.services.models import FileState, StagedFile, TempFileHandle
from swingcoach.utils.retry import PollPolicy, Sleep, default_sleep

logger = logging.getLogger(__name__)


class StageUploader:
    """
    Pushes large files through the Gemini Files API and waits for them to be usable.
    """

    def __init__(
        self,
        gemini: GeminiService,
        policy: PollPolicy = PollPolicy(),
        sleep: Sleep = default_sleep,
    ):
        self.gemini = gemini
        self.policy = policy
        self.sleep = sleep

    async def upload(
        self, handle: TempFileHandle, media_type: str, display_name: str
    ) -> StagedFile:
        """
        Upload a local temp file to the remote staging area.

        :raises StagingError: If the upload call fails or returns no file name.
        """
        logger.info(
            f"[{handle.request_id}] Uploading {os.path.basename(handle.path)} to Files API"
        )
        try:
            remote_file = await self.gemini.upload_file(handle.path, media_type, display_name)
        except Exception as e:
            logger.error(f"[{handle.request_id}] Files API upload failed: {e}")
            raise StagingError(f"Failed to upload the file for processing: {e}") from e

        if remote_file is None or not getattr(remote_file, "name", None):
            raise StagingError("The Files API response did not include a file name.")

        staged = to_staged_file(remote_file)
        if not staged.media_type:
            staged = replace(staged, media_type=media_type)
        logger.info(f"[{handle.request_id}] Files API upload complete: {staged.uri}")
        return staged

    async def wait_until_active(self, staged: StagedFile, request_id: str = "-") -> StagedFile:
        """
        Poll the remote file until it is ACTIVE.

        Sleeps ``policy.interval_seconds`` before each status read and reads at most
        ``policy.max_attempts`` times.

        :raises ProcessingFailedError: If the remote reports a terminal non-ACTIVE state.
        :raises ProcessingTimeoutError: If the budget runs out while still PENDING.
        """
        current = staged
        attempts = 0
        logger.info(f"[{request_id}] Waiting for {current.name} to become ACTIVE")

        while not self.policy.is_terminal(current.state) and attempts < self.policy.max_attempts:
            await self.sleep(self.policy.interval_seconds)
            if not current.name:
                raise StagingError("The file name was lost while waiting for processing.")
            try:
                remote_file = await self.gemini.get_file(current.name)
            except Exception as e:
                logger.error(f"[{request_id}] Files API status check failed: {e}")
                raise StagingError(f"Failed to check the file processing state: {e}") from e
            polled = to_staged_file(remote_file)
            current = replace(polled, media_type=polled.media_type or current.media_type)
            attempts += 1
            logger.info(
                f"[{request_id}] ...state after attempt {attempts}/{self.policy.max_attempts}: "
                f"{current.remote_state}"
            )

        if current.state == FileState.ACTIVE:
            logger.info(f"[{request_id}] {current.name} is ACTIVE")
            return current

        if current.state == FileState.PENDING:
            logger.error(
                f"[{request_id}] {current.name} still {current.remote_state} after "
                f"{attempts} attempts"
            )
            raise ProcessingTimeoutError(
                f"File processing did not finish in time. State: {current.remote_state}",
                last_state=current.remote_state,
                detail=current.error,
            )

        logger.error(f"[{request_id}] {current.name} processing failed: {current.error}")
        raise ProcessingFailedError(
            f"File processing failed. State: {current.remote_state}",
            last_state=current.remote_state,
            detail=current.error,
        )
