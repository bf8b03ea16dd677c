import asyncio
import os
from unittest.mock import AsyncMock, MagicMock

from google.genai import errors

from swingcoach.services.cleanup_service import CleanupCoordinator
from swingcoach.services.exceptions import CleanupError
from swingcoach.services.gemini_service import GeminiService
from swingcoach.services.models import FileState, RawBytes, StagedFile, TempFileHandle
from swingcoach.services.temp_file_service import TempFileStore

STAGED = StagedFile(
    name="files/swing-123",
    uri="https://x/files/swing-123",
    media_type="video/mp4",
    state=FileState.PENDING,
)


def _saved_handle(temp_store: TempFileStore) -> TempFileHandle:
    return asyncio.run(temp_store.save(RawBytes(b"data"), "req", "swing.mp4"))


class TestCleanupCoordinator:
    def test_deletes_remote_and_local(
        self, temp_store: TempFileStore, gemini: GeminiService, fake_client: MagicMock
    ) -> None:
        handle = _saved_handle(temp_store)

        asyncio.run(CleanupCoordinator(temp_store, gemini).run(STAGED, handle))

        fake_client.files.delete.assert_called_once_with(name="files/swing-123")
        assert not os.path.exists(handle.path)

    def test_nothing_to_clean(
        self, temp_store: TempFileStore, gemini: GeminiService, fake_client: MagicMock
    ) -> None:
        asyncio.run(CleanupCoordinator(temp_store, gemini).run(None, None))
        fake_client.files.delete.assert_not_called()

    def test_remote_failure_still_deletes_local(
        self, temp_store: TempFileStore, gemini: GeminiService, fake_client: MagicMock
    ) -> None:
        fake_client.files.delete.side_effect = RuntimeError("network down")
        handle = _saved_handle(temp_store)

        asyncio.run(CleanupCoordinator(temp_store, gemini).run(STAGED, handle))

        assert not os.path.exists(handle.path)

    def test_remote_already_absent_is_tolerated(
        self, temp_store: TempFileStore, gemini: GeminiService, fake_client: MagicMock
    ) -> None:
        fake_client.files.delete.side_effect = errors.ClientError(
            404, {"error": {"code": 404, "message": "not found", "status": "NOT_FOUND"}}
        )
        handle = _saved_handle(temp_store)

        asyncio.run(CleanupCoordinator(temp_store, gemini).run(STAGED, handle))

        assert not os.path.exists(handle.path)

    def test_skips_remote_delete_without_credential(self, temp_store: TempFileStore) -> None:
        handle = _saved_handle(temp_store)

        asyncio.run(CleanupCoordinator(temp_store, gemini=None).run(STAGED, handle))

        assert not os.path.exists(handle.path)

    def test_local_failure_is_swallowed(self, gemini: GeminiService) -> None:
        temp_store = MagicMock(spec=TempFileStore)
        temp_store.delete = AsyncMock(side_effect=CleanupError("permission denied"))
        handle = TempFileHandle(path="/tmp/req_swing.mp4", request_id="req")

        asyncio.run(CleanupCoordinator(temp_store, gemini).run(None, handle))

        temp_store.delete.assert_awaited_once_with(handle)
