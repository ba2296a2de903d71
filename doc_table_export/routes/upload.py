import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from ..exceptions import InputRejected
from ..models.schemas import HealthResponse, UploadResponse
from ..services.pipeline_service import TableExportPipeline, table_export_pipeline
from ..services.retention_service import retention_sweeper
from ..utils.logging import logger

router = APIRouter(prefix="/api/v1", tags=["Table Export"])

PROCESSING_FAILED = "Error processing file."


def get_pipeline() -> TableExportPipeline:
    return table_export_pipeline


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    request: Request,
    file: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=""),
    pipeline: TableExportPipeline = Depends(get_pipeline),
):
    """Extract the table from an uploaded PDF/JPEG/PNG and return Excel and PDF download links"""
    start_time = time.time()

    logger.log_step("upload_request_received", {
        "client": request.client.host if request.client else "unknown",
        "filename": file.filename if file else None,
        "content_type": file.content_type if file else None,
        "has_title": bool(title and title.strip())
    })

    try:
        return await pipeline.run(file, title)
    except InputRejected as ir:
        logger.log_error("upload_rejected", {
            "error": str(ir),
            "process_time": time.time() - start_time
        })
        raise HTTPException(status_code=400, detail=str(ir))
    except Exception as exc:
        logger.log_error("upload_processing_failed", {
            "error": str(exc),
            "error_type": type(exc).__name__,
            "process_time": time.time() - start_time
        })
        raise HTTPException(status_code=500, detail=PROCESSING_FAILED)


# Unversioned path used by the browser client
legacy_router = APIRouter(tags=["Table Export"])
legacy_router.add_api_route("/upload", upload_document, methods=["POST"], response_model=UploadResponse)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        agent="table_export_agent",
        sweeper_running=retention_sweeper.running,
    )
