from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from swingcoach.services.gemini_service import GeminiService
from swingcoach.services.temp_file_service import TempFileStore


def remote_file(
    state: Optional[str] = "PROCESSING",
    name: Optional[str] = "files/swing-123",
    uri: Optional[str] = "https://generativelanguage.googleapis.com/v1beta/files/swing-123",
    mime_type: Optional[str] = "video/mp4",
    error: Optional[str] = None,
) -> SimpleNamespace:
    """Stand-in for a google.genai File object."""
    return SimpleNamespace(
        name=name,
        uri=uri,
        mime_type=mime_type,
        state=state,
        error=SimpleNamespace(message=error) if error else None,
    )


class RecordingSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def fake_client() -> MagicMock:
    client = MagicMock()
    client.files.upload.return_value = remote_file("PROCESSING")
    client.files.get.return_value = remote_file("ACTIVE")
    client.files.delete.return_value = None
    client.models.generate_content.return_value = SimpleNamespace(text="Great tempo.")
    return client


@pytest.fixture()
def gemini(fake_client: MagicMock) -> GeminiService:
    return GeminiService(fake_client)


@pytest.fixture()
def temp_store(tmp_path) -> TempFileStore:
    return TempFileStore(str(tmp_path))


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def make_remote_file():
    return remote_file
