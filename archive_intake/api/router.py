# Copyright 2026 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""API router for Archive Intake endpoints.

A thin adapter over :class:`~archive_intake.core.service.IntakeService`:
request parsing and upload staging happen here, every decision about the
archive happens in the service.  Failed results are returned as their JSON
body with a status code derived from ``error_type``.
"""

import asyncio
import concurrent.futures
import contextlib
import functools
import logging
import re
import time
from datetime import datetime, timezone

try:
    from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel, Field
except ImportError:
    raise ImportError("API server requires FastAPI. Install with: pip install fastapi uvicorn python-multipart")

from .. import __version__ as PACKAGE_VERSION
from ..config.config import Config
from ..config.constants import ArchiveIntakeConstants
from ..core.fs_utils import is_valid_file_name
from ..core.models import ExtractOptions, ToolResult
from ..core.service import IntakeService

logger = logging.getLogger("archive_intake.api")

router = APIRouter()

_UPLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MB chunks
_UNSAFE_STORED_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

_STATUS_BY_ERROR_TYPE = {
    "not_found": 404,
    "invalid_transition": 409,
    "persistence_failure": 500,
    "io_error": 500,
}

_service: IntakeService | None = None


def get_service() -> IntakeService:
    """Process-wide service built from the environment on first use."""
    global _service
    if _service is None:
        _service = IntakeService(Config.from_env())
    return _service


def _respond(result: ToolResult):
    if result.success:
        return result.to_dict()
    status_code = _STATUS_BY_ERROR_TYPE.get(result.error_type or "", 400)
    return JSONResponse(status_code=status_code, content=result.to_dict())


async def _run_blocking(func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        return await loop.run_in_executor(executor, functools.partial(func, *args, **kwargs))


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ExtractRequest(BaseModel):
    """Request model for extracting an archive already on local storage."""

    file_path: str = Field(..., description="Path to the ZIP file")
    extract_to: str = Field(
        ArchiveIntakeConstants.DEFAULT_EXTRACT_TO, description="Extraction directory, relative to the data directory"
    )
    overwrite: bool = Field(False, description="Replace files that already exist")
    preserve_structure: bool = Field(True, description="Keep the archive's directory layout")


class ApprovalRequest(BaseModel):
    """Approval decision for a context."""

    approved: bool
    reason: str | None = Field(None, description="Free-text justification stored on the context")


class SnapshotRequest(BaseModel):
    """Request model for creating a snapshot."""

    include_logs: bool = True
    include_context: bool = True
    include_files: bool = False


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_model=dict)
async def root():
    """Root endpoint."""
    return {"service": "Archive Intake API", "version": PACKAGE_VERSION, "docs": "/docs", "health": "/health"}


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=PACKAGE_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.post("/extract-upload")
async def extract_uploaded_archive(
    file: UploadFile = File(..., description="ZIP archive to ingest"),
    extract_to: str = Form(ArchiveIntakeConstants.DEFAULT_EXTRACT_TO, description="Extraction directory"),
    overwrite: bool = Form(False, description="Replace files that already exist"),
    preserve_structure: bool = Form(True, description="Keep the archive's directory layout"),
    service: IntakeService = Depends(get_service),
):
    """Stage an uploaded ZIP, extract it and record a pending context."""
    if not file.filename or not is_valid_file_name(file.filename):
        raise HTTPException(status_code=400, detail="Invalid file name")
    if not file.filename.lower().endswith(".zip"):
        raise HTTPException(status_code=400, detail="Only ZIP files are allowed")

    uploads_dir = service.config.uploads_dir
    uploads_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"{int(time.time() * 1000)}-{_UNSAFE_STORED_NAME_CHARS.sub('_', file.filename)}"
    upload_path = uploads_dir / stored_name

    # Stream upload with size limit to avoid memory exhaustion
    max_bytes = ArchiveIntakeConstants.MAX_UPLOAD_SIZE_BYTES
    total_read = 0
    try:
        with open(upload_path, "wb") as f:
            while chunk := await file.read(_UPLOAD_CHUNK_SIZE):
                total_read += len(chunk)
                if total_read > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"Upload exceeds maximum size of {max_bytes // (1024 * 1024)} MB",
                    )
                f.write(chunk)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            upload_path.unlink()
        raise

    logger.info("Upload staged: %s (%d bytes)", upload_path, total_read)
    result = await _run_blocking(
        service.ingest,
        upload_path,
        original_name=file.filename,
        extract_to=extract_to,
        options=ExtractOptions(overwrite=overwrite, preserve_structure=preserve_structure),
    )
    if not result.success:
        logger.warning("ZIP upload rejected: %s", result.message)
        with contextlib.suppress(FileNotFoundError):
            upload_path.unlink()
    return _respond(result)


@router.post("/extract")
def extract_archive(request: ExtractRequest, service: IntakeService = Depends(get_service)):
    """Extract an archive that is already on local storage."""
    if "\x00" in request.file_path or "\x00" in request.extract_to:
        raise HTTPException(status_code=400, detail="Invalid path: null bytes are not allowed")

    result = service.extract_archive(
        request.file_path,
        request.extract_to,
        ExtractOptions(overwrite=request.overwrite, preserve_structure=request.preserve_structure),
    )
    return _respond(result)


@router.post("/contexts/{context_id}/approval")
def set_approval(context_id: str, request: ApprovalRequest, service: IntakeService = Depends(get_service)):
    """Approve or reject a context."""
    return _respond(service.set_approval(context_id, request.approved, request.reason))


@router.get("/contexts")
def list_contexts(
    status: str | None = Query(None, pattern="^(pending|approved|rejected|all)$"),
    type: str | None = Query(None, pattern="^(zip|file|directory|all)$"),
    search: str | None = Query(None, max_length=200),
    limit: int = Query(ArchiveIntakeConstants.DEFAULT_LIST_LIMIT, ge=0, le=100),
    offset: int = Query(0, ge=0),
    service: IntakeService = Depends(get_service),
):
    """List contexts, newest first."""
    return _respond(service.list_contexts(status=status, type=type, search=search, limit=limit, offset=offset))


@router.get("/contexts/{context_id}")
def get_context(context_id: str, service: IntakeService = Depends(get_service)):
    """Fetch a single context."""
    return _respond(service.get_context(context_id))


@router.post("/snapshot")
def create_snapshot(request: SnapshotRequest | None = None, service: IntakeService = Depends(get_service)):
    """Bundle a diagnostic snapshot."""
    request = request or SnapshotRequest()
    return _respond(
        service.create_snapshot(
            include_logs=request.include_logs,
            include_context=request.include_context,
            include_files=request.include_files,
        )
    )


@router.get("/snapshots")
def list_snapshots(service: IntakeService = Depends(get_service)):
    """List snapshot archives, newest first."""
    return _respond(service.list_snapshots())


@router.get("/stats")
def stats(service: IntakeService = Depends(get_service)):
    """Context and storage statistics."""
    return _respond(service.stats())
