from typing import List, Optional

from fastapi import Depends, FastAPI, File, Header, Query, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from doc_summarizer import config
from doc_summarizer.errors import (
    ErrorKind,
    SummaryPipelineError,
    UnsupportedUploadError,
    UploadTooLargeError,
)
from doc_summarizer.models import SubmitResult
from doc_summarizer.service import SummaryService

# ---- logging ----
from doc_summarizer.logging_config import get_api_logger, setup_all_loggers
setup_all_loggers()
logger = get_api_logger()


# ============================================================================
# API METADATA AND TAGS
# ============================================================================

API_TITLE = "Document Summarizer API"
API_VERSION = "1.0.0"
API_DESCRIPTION = """
## Overview

Upload a document, request a summary, then poll for the result.

```
Upload → Submit → Queue → Worker: Extract → (Chunk) → Summarize → Status Cache
```

- Texts up to 8,000 characters are summarized with a single LLM call
- Longer texts are chunked and summarized map-reduce style (max 10 chunks)
- Uploaded files are deleted automatically after the retention window

## Identity

No authentication. The caller's user id is read from the `X-User-Id` header
and used only as an ownership tag.
"""

tags_metadata = [
    {
        "name": "Documents",
        "description": "Upload and delete documents.",
    },
    {
        "name": "Summaries",
        "description": "Request summaries and poll their status.",
    },
    {
        "name": "System",
        "description": "System health endpoints.",
    },
]


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class DocumentResponse(BaseModel):
    """Uploaded document metadata."""
    document_id: str = Field(..., description="Identifier used for all later calls")
    original_name: str = Field(..., description="Uploaded file name")
    size: int = Field(..., description="Size in bytes")
    extension: str = Field(..., description="Normalized file extension")
    uploaded_at: float = Field(..., description="Upload time (Unix seconds)")
    delete_at: float = Field(..., description="Scheduled deletion time (Unix seconds)")
    summary: Optional[SubmitResult] = Field(None, description="Result of the summary request when auto_submit is set")

    class Config:
        json_schema_extra = {
            "example": {
                "document_id": "3f2b8c0e9d4a4c55b1e6a7d8c9f01234",
                "original_name": "report.pdf",
                "size": 482133,
                "extension": ".pdf",
                "uploaded_at": 1760000000.0,
                "delete_at": 1760345600.0,
                "summary": "accepted"
            }
        }


class SubmitResponse(BaseModel):
    document_id: str = Field(..., description="Document the summary was requested for")
    result: SubmitResult = Field(..., description="accepted, already_active or already_completed")


class SummaryStatusResponse(BaseModel):
    """Polled summary status."""
    document_id: str
    status: str = Field(..., description="pending, processing, completed or failed")
    content: Optional[str] = Field(None, description="Summary text when completed")
    error_reason: Optional[str] = Field(None, description="Machine-readable failure code when failed")
    message: Optional[str] = Field(None, description="Human readable failure message when failed")

    class Config:
        json_schema_extra = {
            "example": {
                "document_id": "3f2b8c0e9d4a4c55b1e6a7d8c9f01234",
                "status": "failed",
                "error_reason": "document_too_large",
                "message": "File is too large to process. This document would require 12 chunks ..."
            }
        }


class SummaryHistoryItem(BaseModel):
    document_id: str
    status: str
    method: Optional[str] = None
    chunk_count: Optional[int] = None
    attempts: int = 0
    error_reason: Optional[str] = None
    created_at: float
    completed_at: Optional[float] = None


class HealthResponse(BaseModel):
    status: str = Field(..., description="healthy or degraded")
    version: str
    services: dict = Field(..., description="Status of dependent services")


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str = Field(..., description="Error description")
    reason: Optional[str] = Field(None, description="Machine-readable error code")


# ============================================================================
# FASTAPI APP INITIALIZATION
# ============================================================================

app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description=API_DESCRIPTION,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Built on first request so importing the app never opens connections
_components = None
_sweeper = None


def get_components():
    global _components
    if _components is None:
        from doc_summarizer.bootstrap import build_components
        _components = build_components()
    return _components


def get_service() -> SummaryService:
    return get_components().service


@app.on_event("startup")
def startup_event():
    global _sweeper
    logger.info("Document Summarizer API starting...")
    if config.RUN_SWEEPER_IN_API:
        from doc_summarizer.cleanup.cleanup_service import RetentionSweeper
        _sweeper = RetentionSweeper(get_components().registry)
        _sweeper.start()
    logger.info("Document Summarizer API started")


@app.on_event("shutdown")
def shutdown_event():
    global _components, _sweeper
    logger.info("Document Summarizer API shutting down...")
    if _sweeper is not None:
        _sweeper.stop()
        _sweeper = None
    if _components is not None:
        from doc_summarizer.bootstrap import close_components
        close_components(_components)
        _components = None
    logger.info("Document Summarizer API stopped")


def _status_code_for(error: SummaryPipelineError) -> int:
    if isinstance(error, UploadTooLargeError):
        return 413
    if isinstance(error, UnsupportedUploadError):
        return status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    if error.kind == ErrorKind.VALIDATION:
        return status.HTTP_400_BAD_REQUEST
    if error.kind == ErrorKind.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(SummaryPipelineError)
async def pipeline_error_handler(request: Request, exc: SummaryPipelineError):
    status_code = _status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed | error={exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected | status={status_code} | error={exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "reason": exc.reason.value if exc.reason else None},
    )


# ============================================================================
# SYSTEM ENDPOINTS
# ============================================================================

@app.get("/", tags=["System"], summary="API information")
def root():
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs_url": "/docs",
        "redoc_url": "/redoc"
    }


@app.get("/health", response_model=HealthResponse, tags=["System"], summary="Health check")
def health(components=Depends(get_components)):
    services = {}
    for name, client in (("redis", components.redis), ("cache", components.cache_redis)):
        try:
            client.ping()
            services[name] = "connected"
        except Exception as e:
            logger.warning(f"Health check: {name} unavailable | error={e}")
            services[name] = "unavailable"

    healthy = all(v == "connected" for v in services.values())
    return {"status": "healthy" if healthy else "degraded", "version": API_VERSION, "services": services}


# ============================================================================
# DOCUMENT ENDPOINTS
# ============================================================================

@app.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Empty upload", "model": ErrorResponse},
        413: {"description": "File larger than the upload limit", "model": ErrorResponse},
        415: {"description": "Unsupported file type", "model": ErrorResponse},
    },
    tags=["Documents"],
    summary="Upload a document",
)
def upload_document(
    file: UploadFile = File(..., description="PDF, DOCX, DOC, TXT or MD file"),
    auto_submit: bool = Query(False, description="Also request a summary for the uploaded document"),
    x_user_id: Optional[str] = Header(None),
    service: SummaryService = Depends(get_service),
):
    logger.info(f"Received upload | name={file.filename} | user={x_user_id}")

    # One byte over the limit is enough to reject
    data = file.file.read(config.MAX_UPLOAD_BYTES + 1)
    document = service.upload(file.filename, data, owner_id=x_user_id, mime_type=file.content_type)
    summary = service.submit(document.id, owner_id=x_user_id) if auto_submit else None

    return {
        "document_id": document.id,
        "original_name": document.original_name,
        "size": document.size,
        "extension": document.extension,
        "uploaded_at": document.uploaded_at,
        "delete_at": document.delete_at,
        "summary": summary,
    }


@app.delete(
    "/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Document not found", "model": ErrorResponse}},
    tags=["Documents"],
    summary="Delete a document and its summary",
)
def delete_document(
    document_id: str,
    x_user_id: Optional[str] = Header(None),
    service: SummaryService = Depends(get_service),
):
    service.delete(document_id, owner_id=x_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# SUMMARY ENDPOINTS
# ============================================================================

@app.post(
    "/summaries/{document_id}",
    response_model=SubmitResponse,
    responses={
        200: {"description": "A job already exists for this document"},
        202: {"description": "Summary job queued"},
        404: {"description": "Document not found", "model": ErrorResponse},
    },
    tags=["Summaries"],
    summary="Request a summary",
)
def submit_summary(
    document_id: str,
    response: Response,
    x_user_id: Optional[str] = Header(None),
    service: SummaryService = Depends(get_service),
):
    result = service.submit(document_id, owner_id=x_user_id)

    if result == SubmitResult.NOT_FOUND:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": f"Document {document_id} not found", "reason": "document_not_found"},
        )

    response.status_code = status.HTTP_202_ACCEPTED if result == SubmitResult.ACCEPTED else status.HTTP_200_OK
    return {"document_id": document_id, "result": result}


@app.get(
    "/summaries/{document_id}",
    response_model=SummaryStatusResponse,
    response_model_exclude_none=True,
    responses={404: {"description": "No summary job for this document", "model": ErrorResponse}},
    tags=["Summaries"],
    summary="Poll summary status",
)
def get_summary_status(document_id: str, service: SummaryService = Depends(get_service)):
    entry = service.get_status(document_id)
    return {"document_id": document_id, **entry.to_dict()}


@app.get(
    "/summaries",
    response_model=List[SummaryHistoryItem],
    responses={400: {"description": "Missing X-User-Id header", "model": ErrorResponse}},
    tags=["Summaries"],
    summary="List the caller's summaries, most recent first",
)
def summary_history(
    x_user_id: Optional[str] = Header(None),
    limit: int = Query(50, ge=1, le=200),
    service: SummaryService = Depends(get_service),
):
    jobs = service.history(x_user_id, limit=limit)
    return [
        {
            "document_id": job.id,
            "status": job.status.value,
            "method": job.method,
            "chunk_count": job.chunk_count,
            "attempts": job.attempts,
            "error_reason": job.error_reason,
            "created_at": job.created_at,
            "completed_at": job.completed_at,
        }
        for job in jobs
    ]
