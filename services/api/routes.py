"""Privileged endpoints exposing the bridge operations to the application."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from r2gate.client import R2
from services.api.schemas import (
    IngestRequest,
    IngestResponse,
    ReadUrlResponse,
    UploadAuthorizationResponse,
)


router = APIRouter(prefix="/v1")


def _r2(request: Request) -> R2:
    return request.app.state.r2


@router.post("/uploads", response_model=UploadAuthorizationResponse, tags=["objects"])
async def create_upload(request: Request) -> UploadAuthorizationResponse:
    auth = _r2(request).issue_upload_authorization()
    return UploadAuthorizationResponse(key=auth.key, url=auth.url)


@router.post("/objects/ingest", response_model=IngestResponse, tags=["objects"])
async def ingest_object(payload: IngestRequest, request: Request) -> IngestResponse:
    key = await _r2(request).store_from_url(payload.url)
    return IngestResponse(key=key)


@router.get("/objects/{key}/url", response_model=ReadUrlResponse, tags=["objects"])
async def read_url(key: str, request: Request) -> ReadUrlResponse:
    return ReadUrlResponse(key=key, url=_r2(request).issue_read_authorization(key))


@router.delete("/objects/{key}", status_code=status.HTTP_204_NO_CONTENT, tags=["objects"])
async def delete_object(key: str, request: Request) -> Response:
    await _r2(request).delete_by_key(key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
