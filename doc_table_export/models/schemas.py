from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

CellValue = Union[str, int, float, bool, None]
ExtractedRow = Dict[str, CellValue]
ExtractionResult = List[ExtractedRow]


class UploadedFile(BaseModel):
    path: Path
    mime_type: str
    original_filename: str
    base_name: str
    created_at: int


class RenderedArtifact(BaseModel):
    path: Path
    filename: str
    created_at: int

    def public_url(self, prefix: str) -> str:
        return f"{prefix.rstrip('/')}/{self.filename}"


class UploadResponse(BaseModel):
    excelFileUrl: str
    pdfFileUrl: str


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: str
    agent: str
    sweeper_running: Optional[bool] = None
