from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime


class ArchiveGenerateResponse(BaseModel):
    message: str
    archive_key: Optional[str] = None
    file_count: int = 0
    missing_count: int = 0
    size_bytes: Optional[int] = None


class ArchiveDownloadResponse(BaseModel):
    download_url: str
    expires_in: int


class ArchivableSubmissionResponse(BaseModel):
    id: str
    title: str
    academic_year: str
    status: str
    school: Optional[str] = None
    department: Optional[str] = None
    total_final_score: float = 0
    archive_status: str
    archive_file_key: Optional[str] = None
    archive_size_bytes: Optional[int] = None
    archive_generated_at: Optional[datetime] = None
    archive_generated_by: Optional[str] = None
    archive_error: Optional[str] = None


class ArchivableSubmissionListResponse(BaseModel):
    submissions: List[ArchivableSubmissionResponse]
    total: int


class ArchiveLogResponse(BaseModel):
    id: str
    submission_id: str
    submission_title: Optional[str] = None
    school: Optional[str] = None
    department: Optional[str] = None
    file_count: int
    missing_file_count: int
    time_taken_sec: Optional[float] = None
    archive_key: str
    size_bytes: Optional[int] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
