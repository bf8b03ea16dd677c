from base64 import b64decode
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union


class Strategy(str, Enum):
    INLINE = "inline"
    STAGED = "staged"


class FileState(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


class RequestState(str, Enum):
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    INLINE_PROCESSING = "INLINE_PROCESSING"
    STAGED_UPLOADING = "STAGED_UPLOADING"
    STAGED_POLLING = "STAGED_POLLING"
    INVOKING = "INVOKING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CLEANED_UP = "CLEANED_UP"


@dataclass(frozen=True)
class RawBytes:
    data: bytes


@dataclass(frozen=True)
class PreEncoded:
    base64: str
    media_type: str

    def decoded_size(self) -> int:
        """Size of the decoded payload, computed from the base64 length alone."""
        length = len(self.base64)
        padding = 0
        if self.base64.endswith("=="):
            padding = 2
        elif self.base64.endswith("="):
            padding = 1
        return max(length * 3 // 4 - padding, 0)

    def decode(self) -> bytes:
        return b64decode(self.base64, validate=True)


Payload = Union[RawBytes, PreEncoded]


@dataclass(frozen=True)
class UploadRequest:
    payload: Payload
    size: int
    media_type: str
    original_name: str
    request_id: str


@dataclass(frozen=True)
class TempFileHandle:
    path: str
    request_id: str


@dataclass(frozen=True)
class InlineMedia:
    data: bytes
    media_type: str


@dataclass(frozen=True)
class StagedFile:
    name: str
    uri: Optional[str]
    media_type: Optional[str]
    state: FileState
    error: Optional[str] = None
    remote_state: Optional[str] = None


MediaReference = Union[InlineMedia, StagedFile]


@dataclass(frozen=True)
class AnalysisResult:
    text: str
    method: Strategy
    elapsed_seconds: float


@dataclass
class RequestContext:
    """Per-request mutable bookkeeping owned by the orchestrator."""

    request_id: str
    state: RequestState = RequestState.RECEIVED
    history: List[RequestState] = field(default_factory=lambda: [RequestState.RECEIVED])
    temp_handle: Optional[TempFileHandle] = None
    staged_file: Optional[StagedFile] = None
    strategy: Optional[Strategy] = None

    def advance(self, state: RequestState) -> None:
        self.state = state
        self.history.append(state)
