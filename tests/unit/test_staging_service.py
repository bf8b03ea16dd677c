import asyncio
from unittest.mock import MagicMock

import pytest

from swingcoach.services.exceptions import (
    ProcessingError,
    ProcessingFailedError,
    ProcessingTimeoutError,
    StagingError,
)
from swingcoach.services.gemini_service import GeminiService
from swingcoach.services.models import FileState, StagedFile, TempFileHandle
from swingcoach.services.staging_service import StageUploader
from swingcoach.utils.retry import PollPolicy

HANDLE = TempFileHandle(path="/tmp/req_swing.mp4", request_id="req")


def _pending() -> StagedFile:
    return StagedFile(
        name="files/swing-123",
        uri="https://generativelanguage.googleapis.com/v1beta/files/swing-123",
        media_type="video/mp4",
        state=FileState.PENDING,
        remote_state="PROCESSING",
    )


class TestUpload:
    def test_returns_staged_file(self, gemini: GeminiService, recording_sleep) -> None:
        uploader = StageUploader(gemini, sleep=recording_sleep)

        staged = asyncio.run(uploader.upload(HANDLE, "video/mp4", "swing.mp4"))

        assert staged.name == "files/swing-123"
        assert staged.state == FileState.PENDING

    def test_fills_missing_media_type(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.upload.return_value = make_remote_file(mime_type=None)
        uploader = StageUploader(gemini, sleep=recording_sleep)

        staged = asyncio.run(uploader.upload(HANDLE, "video/quicktime", "swing.mov"))

        assert staged.media_type == "video/quicktime"

    def test_remote_failure_is_staging_error(
        self, gemini: GeminiService, fake_client: MagicMock, recording_sleep
    ) -> None:
        fake_client.files.upload.side_effect = ConnectionError("reset by peer")
        uploader = StageUploader(gemini, sleep=recording_sleep)

        with pytest.raises(StagingError) as exc_info:
            asyncio.run(uploader.upload(HANDLE, "video/mp4", "swing.mp4"))
        assert "reset by peer" in exc_info.value.message

    def test_missing_name_is_staging_error(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.upload.return_value = make_remote_file(name=None)
        uploader = StageUploader(gemini, sleep=recording_sleep)

        with pytest.raises(StagingError):
            asyncio.run(uploader.upload(HANDLE, "video/mp4", "swing.mp4"))


class TestWaitUntilActive:
    def test_active_after_two_polls(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.get.side_effect = [
            make_remote_file("PROCESSING"),
            make_remote_file("ACTIVE"),
        ]
        uploader = StageUploader(gemini, sleep=recording_sleep)

        staged = asyncio.run(uploader.wait_until_active(_pending()))

        assert staged.state == FileState.ACTIVE
        assert fake_client.files.get.call_count == 2
        assert recording_sleep.calls == [5.0, 5.0]

    def test_already_active_skips_polling(
        self, gemini: GeminiService, fake_client: MagicMock, recording_sleep
    ) -> None:
        uploader = StageUploader(gemini, sleep=recording_sleep)
        active = StagedFile(
            name="files/a", uri="https://x/files/a", media_type="video/mp4", state=FileState.ACTIVE
        )

        assert asyncio.run(uploader.wait_until_active(active)) == active
        fake_client.files.get.assert_not_called()
        assert recording_sleep.calls == []

    def test_budget_exhausted_while_pending(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.get.return_value = make_remote_file("PROCESSING")
        uploader = StageUploader(gemini, sleep=recording_sleep)

        with pytest.raises(ProcessingTimeoutError) as exc_info:
            asyncio.run(uploader.wait_until_active(_pending()))

        assert fake_client.files.get.call_count == 10
        assert recording_sleep.calls == [5.0] * 10
        assert exc_info.value.last_state == "PROCESSING"
        assert exc_info.value.status_code == 504
        assert isinstance(exc_info.value, ProcessingError)

    def test_custom_policy_bounds_attempts(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.get.return_value = make_remote_file("PROCESSING")
        uploader = StageUploader(
            gemini, PollPolicy(max_attempts=3, interval_seconds=0.5), sleep=recording_sleep
        )

        with pytest.raises(ProcessingTimeoutError):
            asyncio.run(uploader.wait_until_active(_pending()))

        assert fake_client.files.get.call_count == 3
        assert recording_sleep.calls == [0.5, 0.5, 0.5]

    def test_remote_failure_state(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.get.return_value = make_remote_file(
            "FAILED", error="Video could not be decoded"
        )
        uploader = StageUploader(gemini, sleep=recording_sleep)

        with pytest.raises(ProcessingFailedError) as exc_info:
            asyncio.run(uploader.wait_until_active(_pending()))

        assert fake_client.files.get.call_count == 1
        assert exc_info.value.last_state == "FAILED"
        assert exc_info.value.detail == "Video could not be decoded"

    def test_status_check_failure_is_staging_error(
        self, gemini: GeminiService, fake_client: MagicMock, recording_sleep
    ) -> None:
        fake_client.files.get.side_effect = RuntimeError("503 unavailable")
        uploader = StageUploader(gemini, sleep=recording_sleep)

        with pytest.raises(StagingError):
            asyncio.run(uploader.wait_until_active(_pending()))

    def test_lost_name_is_staging_error(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.get.return_value = make_remote_file("PROCESSING", name=None)
        uploader = StageUploader(gemini, sleep=recording_sleep)

        with pytest.raises(StagingError):
            asyncio.run(uploader.wait_until_active(_pending()))

    def test_keeps_media_type_when_status_omits_it(
        self, gemini: GeminiService, fake_client: MagicMock, make_remote_file, recording_sleep
    ) -> None:
        fake_client.files.get.return_value = make_remote_file("ACTIVE", mime_type=None)
        uploader = StageUploader(gemini, sleep=recording_sleep)

        staged = asyncio.run(uploader.wait_until_active(_pending()))

        assert staged.media_type == "video/mp4"
