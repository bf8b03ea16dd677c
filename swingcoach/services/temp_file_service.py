import asyncio
import binascii
import logging
import os
import re
import tempfile
from typing import Optional

from swingcoach.services.exceptions import CleanupError, InvalidInputError
from swingcoach.services.models import Payload, PreEncoded, RawBytes, TempFileHandle

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(filename: str) -> str:
    base_name = os.path.basename(filename.replace("\\", "/")) or "upload"
    return _UNSAFE_CHARS.sub("_", base_name)


class TempFileStore:
    """
    Transient local storage for uploaded payloads.

    Each file is namespaced by the owning request id so concurrent requests
    never collide in the shared directory.
    """

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory or tempfile.gettempdir()

    async def save(
        self, payload: Payload, request_id: str, original_name: str
    ) -> TempFileHandle:
        """
        Write the payload to disk and return a handle to it.

        The handle only exists once the data is fully written; the write goes to
        a ``.part`` file that is renamed into place.

        :raises InvalidInputError: If a pre-encoded payload is not valid base64.
        """
        data = self._payload_bytes(payload)
        path = os.path.join(
            self.directory, f"{request_id}_{sanitize_filename(original_name)}"
        )
        await asyncio.to_thread(self._write, path, data)
        logger.info(f"[{request_id}] Saved temp file: {os.path.basename(path)}")
        return TempFileHandle(path=path, request_id=request_id)

    async def read(self, handle: TempFileHandle) -> bytes:
        return await asyncio.to_thread(self._read, handle.path)

    async def delete(self, handle: TempFileHandle) -> None:
        """Remove the file behind the handle. A file that is already gone is only logged."""
        try:
            await asyncio.to_thread(os.remove, handle.path)
            logger.info(
                f"[{handle.request_id}] Deleted temp file: {os.path.basename(handle.path)}"
            )
        except FileNotFoundError:
            logger.info(
                f"[{handle.request_id}] Temp file already absent: {os.path.basename(handle.path)}"
            )
        except OSError as e:
            raise CleanupError(f"Failed to delete temp file {handle.path}: {e}") from e

    @staticmethod
    def _payload_bytes(payload: Payload) -> bytes:
        if isinstance(payload, RawBytes):
            return payload.data
        if isinstance(payload, PreEncoded):
            try:
                return payload.decode()
            except (binascii.Error, ValueError) as e:
                raise InvalidInputError("The provided base64 data is invalid.") from e
        raise TypeError(f"Unsupported payload type: {type(payload).__name__}")

    @staticmethod
    def _write(path: str, data: bytes) -> None:
        partial_path = f"{path}.part"
        try:
            with open(partial_path, "wb") as f:
                f.write(data)
            os.replace(partial_path, path)
        except BaseException:
            if os.path.exists(partial_path):
                os.remove(partial_path)
            raise

    @staticmethod
    def _read(path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()
