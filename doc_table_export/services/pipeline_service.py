import time
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import settings
from ..models.schemas import UploadResponse
from ..utils.logging import logger
from .extraction_service import GeminiTableExtractionService, gemini_table_extraction_service
from .render_service import artifact_stem, render_excel, render_pdf
from .upload_service import UploadService, upload_service


class TableExportPipeline:
    """Upload -> extraction -> Excel -> PDF for a single request.

    There is no rollback: a failure at any step leaves earlier files on disk
    for the retention sweeper.
    """

    def __init__(
        self,
        uploads: Optional[UploadService] = None,
        extractor: Optional[GeminiTableExtractionService] = None,
        output_dir: Optional[Path] = None,
        url_prefix: Optional[str] = None,
    ) -> None:
        self.uploads = uploads or upload_service
        self.extractor = extractor or gemini_table_extraction_service
        self.output_dir = Path(output_dir) if output_dir else settings.public_dir_path
        self.url_prefix = url_prefix or settings.public_url_prefix

    async def run(self, upload: Optional[UploadFile], title: Optional[str] = None) -> UploadResponse:
        start_time = time.time()

        uploaded = await self.uploads.persist(upload)
        rows = await self.extractor.extract_table(
            uploaded.path,
            uploaded.mime_type,
            display_name=uploaded.original_filename,
        )

        stem = artifact_stem(uploaded.base_name, uploaded.created_at)
        excel = await run_in_threadpool(render_excel, rows, stem, self.output_dir, title, uploaded.created_at)
        pdf = await run_in_threadpool(render_pdf, rows, stem, self.output_dir, title, uploaded.created_at)

        logger.log_step("table_export_completed", {
            "original_filename": uploaded.original_filename,
            "row_count": len(rows),
            "excel": excel.filename,
            "pdf": pdf.filename,
            "process_time": time.time() - start_time
        })

        return UploadResponse(
            excelFileUrl=excel.public_url(self.url_prefix),
            pdfFileUrl=pdf.public_url(self.url_prefix),
        )


table_export_pipeline = TableExportPipeline()
