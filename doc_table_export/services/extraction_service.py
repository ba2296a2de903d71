import json
from pathlib import Path
from typing import Any, List, Optional

import google.generativeai as genai  # type: ignore[import-not-found]
from fastapi.concurrency import run_in_threadpool

from ..config import settings
from ..exceptions import ExtractionFailure, InputRejected
from ..models.schemas import ExtractionResult
from ..prompts import TABLE_EXTRACTION_PROMPT
from ..utils.logging import logger

SUPPORTED_MIME_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png"})
_SCALAR_TYPES = (str, int, float, bool, type(None))


def parse_table_response(text: str) -> ExtractionResult:
    """Parse the model's reply into a list of rows sharing the first row's columns.

    Rows missing a column are padded with None; columns the first row does not
    carry are dropped and reported in the log.
    """
    cleaned = (text or "").strip()
    if not cleaned:
        raise ExtractionFailure("Model returned an empty response.")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ExtractionFailure(f"Model response is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise ExtractionFailure(f"Expected a JSON array of rows, got {type(data).__name__}.")
    if not data:
        raise ExtractionFailure("Model returned no rows.")

    for index, row in enumerate(data):
        if not isinstance(row, dict):
            raise ExtractionFailure(f"Row {index} is {type(row).__name__}, expected an object.")
        for key, value in row.items():
            if not isinstance(value, _SCALAR_TYPES):
                raise ExtractionFailure(
                    f"Row {index} column '{key}' holds a nested {type(value).__name__}."
                )

    columns = list(data[0].keys())
    rows: ExtractionResult = []
    ragged_rows: List[int] = []
    for index, row in enumerate(data):
        if list(row.keys()) != columns:
            ragged_rows.append(index)
        rows.append({column: row.get(column) for column in columns})

    if ragged_rows:
        logger.log_warning("ragged_rows_normalized", {
            "columns": columns,
            "row_indexes": ragged_rows
        })

    return rows


class GeminiTableExtractionService:
    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None) -> None:
        self._configured_key = api_key
        self.model_name = model_name or settings.GEMINI_MODEL or "gemini-1.5-flash"
        self._model = None
        self._api_key = None

    def _ensure_client(self):
        # Re-read the key on every call so a rotated key is picked up
        source = self._configured_key if self._configured_key is not None else settings.GEMINI_API_KEY
        api_key = source.strip() if source else ""

        if not api_key:
            logger.log_error("gemini_api_key_missing", {"message": "GEMINI_API_KEY is not configured"})
            raise ExtractionFailure("GEMINI_API_KEY is not configured.")

        if self._api_key != api_key or self._model is None:
            logger.log_step("gemini_client_initializing", {"model": self.model_name})
            try:
                genai.configure(api_key=api_key)
                self._model = genai.GenerativeModel(self.model_name)
                self._api_key = api_key
            except Exception as e:
                logger.log_error("gemini_client_init_failed", {
                    "error": str(e),
                    "error_type": type(e).__name__
                })
                raise ExtractionFailure(f"Failed to initialize Gemini client: {e}") from e
            logger.log_step("gemini_client_initialized", {"model": self.model_name})

    @staticmethod
    def _generation_config() -> Optional[dict]:
        if settings.GEMINI_RESPONSE_MIME_TYPE:
            return {"response_mime_type": settings.GEMINI_RESPONSE_MIME_TYPE}
        return None

    async def extract_table(self, file_path: Path, mime_type: str, display_name: Optional[str] = None) -> ExtractionResult:
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise InputRejected(f"Unsupported MIME type: {mime_type}")

        self._ensure_client()
        file_path = Path(file_path)
        display_name = display_name or file_path.name

        def _run() -> ExtractionResult:
            try:
                uploaded: Any = genai.upload_file(
                    path=str(file_path),
                    mime_type=mime_type,
                    display_name=display_name,
                )
                logger.log_step("gemini_file_uploaded", {
                    "display_name": display_name,
                    "mime_type": mime_type,
                    "file_name": getattr(uploaded, "name", None)
                })

                response = self._model.generate_content(
                    [uploaded, "\n\n", TABLE_EXTRACTION_PROMPT],
                    generation_config=self._generation_config(),
                )
                text = response.text
            except Exception as e:
                logger.log_error("gemini_request_failed", {
                    "display_name": display_name,
                    "error": str(e),
                    "error_type": type(e).__name__
                })
                raise ExtractionFailure(f"Gemini request failed: {e}") from e

            try:
                rows = parse_table_response(text)
            except ExtractionFailure as e:
                logger.log_error("gemini_response_rejected", {
                    "display_name": display_name,
                    "error": str(e),
                    "response_preview": (text or "")[:200]
                })
                raise

            logger.log_extraction(display_name, mime_type, len(rows), len(rows[0]))
            return rows

        return await run_in_threadpool(_run)


gemini_table_extraction_service = GeminiTableExtractionService()
