from typing import Any, Dict

import structlog
from fastapi import APIRouter, HTTPException, Query

from textus.config import settings
from textus.datastore.factory import datastore
from textus.exceptions import (
    PartialWriteError,
    RecordNotFoundError,
    StoreError,
    TextusError,
)
from textus.models import (
    HealthResponse,
    ImportRequest,
    ImportResponse,
    TextFragment,
    TextSummary,
)
from textus.services.importer import text_importer
from textus.services.texts import text_service

logger = structlog.get_logger()
router = APIRouter()


def _http_error(event: str, exc: TextusError) -> HTTPException:
    """Translate a text store error into an HTTP response."""
    logger.error(event, error=str(exc), error_type=type(exc).__name__)
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PartialWriteError):
        return HTTPException(
            status_code=500,
            detail={"message": str(exc), "type": exc.record_type, "written": exc.written},
        )
    if isinstance(exc, StoreError):
        return HTTPException(status_code=502, detail=f"Document store error: {exc}")
    return HTTPException(status_code=500, detail=str(exc))


@router.post("/api/texts", response_model=ImportResponse)
async def import_text(request: ImportRequest):
    """Import a text with its annotations"""
    try:
        text_id = await text_importer.import_text(
            request.metadata,
            request.semantics,
            request.typography,
            request.text,
        )
        logger.info("text_uploaded", text_id=text_id, parts=len(request.text))
        return ImportResponse(textId=text_id)
    except TextusError as e:
        raise _http_error("text_import_request_failed", e)


@router.get("/api/texts", response_model=Dict[str, TextSummary])
async def list_texts():
    try:
        return await text_service.list_text_summaries()
    except TextusError as e:
        raise _http_error("text_list_failed", e)


@router.get("/api/texts/{text_id}/complete", response_model=TextFragment, response_model_exclude_none=True)
async def fetch_complete_text(text_id: str):
    """Whole text with its typography"""
    try:
        return await text_service.fetch_complete_text(text_id)
    except TextusError as e:
        raise _http_error("complete_text_fetch_failed", e)


@router.get("/api/texts/{text_id}/metadata")
async def get_text_metadata(text_id: str):
    try:
        return await text_service.get_text_metadata(text_id)
    except TextusError as e:
        raise _http_error("text_metadata_fetch_failed", e)


@router.put("/api/texts/{text_id}/metadata")
async def update_text_metadata(text_id: str, metadata: Dict[str, Any]):
    try:
        return await text_service.update_text_metadata(text_id, metadata)
    except TextusError as e:
        raise _http_error("text_metadata_update_failed", e)


@router.post("/api/texts/{text_id}/semantics")
async def create_semantic_annotation(text_id: str, annotation: Dict[str, Any]):
    try:
        annotation_id = await text_service.create_semantic_annotation(
            {**annotation, "textId": text_id}
        )
        return {"id": annotation_id}
    except TextusError as e:
        raise _http_error("semantic_annotation_create_failed", e)


@router.get("/api/texts/{text_id}", response_model=TextFragment)
async def fetch_text(text_id: str, start: int = Query(..., ge=0), end: int = Query(...)):
    """Text in [start, end) with overlapping annotations"""
    if start >= end:
        raise HTTPException(status_code=422, detail="start must be less than end")
    try:
        return await text_service.fetch_text(text_id, start, end)
    except TextusError as e:
        raise _http_error("text_fetch_failed", e)


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    store_status = "healthy" if await datastore.ping() else "unhealthy"
    return HealthResponse(
        status="healthy" if store_status == "healthy" else "degraded",
        store=store_status,
        backend=settings.store_backend,
    )
