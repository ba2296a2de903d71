import logging
import json
from datetime import datetime, timezone
from typing import Dict, Any

from ..config import settings


class StructuredLogger:
    """Structured logger for the table export agent"""

    def __init__(self):
        self.logger = logging.getLogger("table_export_agent")
        self.logger.setLevel(settings.LOG_LEVEL.upper())

        if not self.logger.handlers:
            self._configure_handlers()

    def _configure_handlers(self) -> None:
        """Configure logger handlers for console and file outputs."""
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        # File handlers
        log_dir = settings.log_dir_path
        log_dir.mkdir(parents=True, exist_ok=True)

        info_handler = logging.FileHandler(log_dir / "table_export_service.log", encoding="utf-8")
        info_handler.setLevel(logging.INFO)
        info_handler.setFormatter(formatter)

        error_handler = logging.FileHandler(log_dir / "table_export_service_error.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)

        self.logger.addHandler(info_handler)
        self.logger.addHandler(error_handler)
        self.logger.propagate = False

    def _payload(self, key: str, value: str, data: Dict[str, Any] = None) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            key: value,
            "agent": "table_export_agent"
        }
        if data:
            log_data.update(data)
        return json.dumps(log_data, default=str)

    def log_step(self, step: str, data: Dict[str, Any] = None):
        """Log a processing step"""
        self.logger.info(f"STEP: {self._payload('step', step, data)}")

    def log_warning(self, warning_type: str, data: Dict[str, Any] = None):
        """Log a recoverable anomaly"""
        self.logger.warning(f"WARNING: {self._payload('warning', warning_type, data)}")

    def log_error(self, error_type: str, data: Dict[str, Any] = None):
        """Log an error"""
        self.logger.error(f"ERROR: {self._payload('error', error_type, data)}")

    def log_extraction(self, filename: str, mime_type: str, row_count: int, column_count: int):
        """Log extraction completion"""
        self.log_step("table_extraction_completed", {
            "filename": filename,
            "mime_type": mime_type,
            "row_count": row_count,
            "column_count": column_count
        })

    def log_artifact(self, kind: str, filename: str, row_count: int):
        """Log a rendered artifact"""
        self.log_step("artifact_rendered", {
            "kind": kind,
            "filename": filename,
            "row_count": row_count
        })

    def log_file_deleted(self, path: str, age_seconds: float):
        """Log a retention sweep deletion"""
        self.log_step("expired_file_deleted", {
            "path": path,
            "age_seconds": round(age_seconds, 1)
        })


# Global logger instance
logger = StructuredLogger()
