from __future__ import annotations

from pydantic import BaseModel, Field


class UploadAuthorizationResponse(BaseModel):
    key: str
    url: str


class IngestRequest(BaseModel):
    url: str = Field(..., min_length=1, description="http(s) URL of the object to copy into the bucket")


class IngestResponse(BaseModel):
    key: str


class ReadUrlResponse(BaseModel):
    key: str
    url: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, str] = Field(default_factory=dict)
