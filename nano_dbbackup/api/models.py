"""Pydantic models for API responses."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class BackupResultData(BaseModel):
    name: str
    provider: str
    url: str


class BackupCreatedResponse(BaseModel):
    success: bool = True
    data: BackupResultData


class ErrorDetail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    details: Optional[str] = None
    original_error: Optional[str] = Field(None, alias="originalError")


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


class HealthStatus(BaseModel):
    status: str  # "healthy", "degraded", "unhealthy"
    pg_dump: bool
    artifact_dir_writable: bool
    timestamp: datetime = Field(default_factory=datetime.utcnow)
