import json
import logging
import mimetypes
import re
import uuid
from typing import Any, Optional, Tuple

from fastapi import Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from swingcoach.configs.config import Settings
from swingcoach.services.dispatch_service import ensure_within_cap
from swingcoach.services.exceptions import InvalidInputError
from swingcoach.services.models import PreEncoded, RawBytes, UploadRequest

logger = logging.getLogger(__name__)

FILE_FIELD = "file"
BASE64_FIELDS = ("fileBase64", "videoBase64")

_DATA_URL = re.compile(r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(;[^,]*)?,", re.IGNORECASE)
_GENERIC_MEDIA_TYPES = {"", "application/octet-stream"}


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or uuid.uuid4().hex


def resolve_media_type(declared: Optional[str], filename: Optional[str], default: str) -> str:
    """Declared type first, then a guess from the file name, then the default."""
    if declared and declared.lower() not in _GENERIC_MEDIA_TYPES:
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return default


def split_data_url(value: str) -> Tuple[Optional[str], str]:
    """Strip a ``data:<type>;base64,`` prefix, returning (media type, base64 data)."""
    match = _DATA_URL.match(value)
    if not match:
        return None, value
    return match.group("media_type"), value[match.end():]


async def parse_upload_request(request: Request, settings: Settings) -> UploadRequest:
    """
    Build an UploadRequest from either a multipart form (``file`` field) or a JSON
    body carrying ``fileBase64`` / ``videoBase64``.

    Oversized uploads are rejected from their declared size, before the body is read
    into memory.

    :raises InvalidInputError: If no usable file or payload is present.
    :raises PayloadTooLargeError: If the declared size is over MAX_UPLOAD_SIZE.
    """
    request_id = get_request_id(request)
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("multipart/form-data"):
        return await _from_form(request, settings, request_id)
    if "json" in content_type:
        return await _from_json(request, settings, request_id)

    raise InvalidInputError(
        "Send the video as multipart form data ('file' field) "
        "or as JSON with 'fileBase64'."
    )


async def _from_form(request: Request, settings: Settings, request_id: str) -> UploadRequest:
    try:
        form = await request.form()
    except (HTTPException, MultiPartException) as e:
        raise InvalidInputError("The multipart form could not be parsed.") from e
    file = form.get(FILE_FIELD)
    if not isinstance(file, UploadFile) or not file.filename:
        raise InvalidInputError("No file was selected.")

    if file.size is not None:
        ensure_within_cap(file.size, settings.MAX_UPLOAD_SIZE)

    data = await file.read()
    await file.close()
    ensure_within_cap(len(data), settings.MAX_UPLOAD_SIZE)

    logger.info(f"[{request_id}] Multipart upload: {file.filename} ({len(data)} bytes)")
    return UploadRequest(
        payload=RawBytes(data),
        size=len(data),
        media_type=resolve_media_type(
            file.content_type, file.filename, settings.DEFAULT_MEDIA_TYPE
        ),
        original_name=file.filename,
        request_id=request_id,
    )


async def _from_json(request: Request, settings: Settings, request_id: str) -> UploadRequest:
    try:
        body: Any = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInputError("The request body is not valid JSON.") from e
    if not isinstance(body, dict):
        raise InvalidInputError("The request body must be a JSON object.")

    encoded = next(
        (
            body[field]
            for field in BASE64_FIELDS
            if isinstance(body.get(field), str) and body[field]
        ),
        None,
    )
    if encoded is None:
        raise InvalidInputError("No video data was provided.")

    url_media_type, encoded = split_data_url(encoded.strip())
    # Strict decoding rejects whitespace, so drop line breaks first
    encoded = "".join(encoded.split())
    file_name = body.get("fileName") if isinstance(body.get("fileName"), str) else None
    declared = body.get("mimeType") if isinstance(body.get("mimeType"), str) else None
    media_type = resolve_media_type(
        declared or url_media_type, file_name, settings.DEFAULT_MEDIA_TYPE
    )
    if not file_name:
        file_name = f"upload{mimetypes.guess_extension(media_type) or ''}"

    payload = PreEncoded(base64=encoded, media_type=media_type)
    size = payload.decoded_size()
    ensure_within_cap(size, settings.MAX_UPLOAD_SIZE)

    logger.info(f"[{request_id}] Base64 upload: {file_name} (~{size} bytes)")
    return UploadRequest(
        payload=payload,
        size=size,
        media_type=media_type,
        original_name=file_name,
        request_id=request_id,
    )
