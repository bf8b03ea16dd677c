from typing import Dict, Optional

from pydantic import BaseModel, Field

from swingcoach.services.exceptions import AnalysisError


class FileInfo(BaseModel):
    originalName: str
    originalSize: str  # e.g. "12.3MB"
    processingTime: str  # e.g. "4.2s"
    method: str  # "inline" or "staged"


class AnalysisResponse(BaseModel):
    success: bool
    analysis: Optional[str] = None
    error: Optional[str] = None
    fileInfo: Optional[FileInfo] = None

    # HTTP status for the transport layer, not part of the body
    status_code: int = Field(default=200, exclude=True)

    @classmethod
    def failure(cls, message: str, status_code: int) -> "AnalysisResponse":
        return cls(success=False, error=message, status_code=status_code)

    @classmethod
    def from_error(cls, error: AnalysisError) -> "AnalysisResponse":
        return cls.failure(f"Analysis failed: {error.message}", error.status_code)


class AnalyzeEndpointInfo(BaseModel):
    message: str
    endpoint: str
    method: str
    maxFileSize: str
    inlineSizeLimit: str
    models: Dict[str, str]
    body: Dict[str, str]
