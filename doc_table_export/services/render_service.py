"""Rendering of extracted rows into the downloadable Excel and PDF artifacts.

Both renderers take their column order from the first row and upper-case the
headers. Files are written under a hidden ``.part`` name and moved into
place once complete, so the static route never serves a half-written file.
"""

import os
import secrets
import time
from pathlib import Path
from typing import Callable, List, Optional
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..exceptions import RenderFailure
from ..models.schemas import CellValue, ExtractionResult, RenderedArtifact
from ..utils.logging import logger

SHEET_TITLE = "Extracted Data"
PDF_MARGIN = 50

_CENTER = Alignment(horizontal="center", vertical="center")


def current_millis() -> int:
    return int(time.time() * 1000)


def artifact_stem(base_name: str, created_at: Optional[int] = None) -> str:
    """Return ``{epoch-ms}-{base_name}-{6 hex}``, shared by both artifacts of a request."""
    created_at = created_at if created_at is not None else current_millis()
    return f"{created_at}-{base_name}-{secrets.token_hex(3)}"


def table_columns(rows: ExtractionResult) -> List[str]:
    if not rows:
        raise RenderFailure("Cannot render an empty extraction result.")
    return list(rows[0].keys())


def cell_text(value: CellValue) -> str:
    if value is None:
        return ""
    return str(value)


def _has_title(title: Optional[str]) -> bool:
    return bool(title and title.strip())


def _write_atomically(target: Path, writer: Callable[[Path], None]) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    partial = target.with_name(f".{target.stem}.part{target.suffix}")
    try:
        writer(partial)
        os.replace(partial, target)
    except Exception:
        try:
            partial.unlink(missing_ok=True)
        except OSError as cleanup_error:
            logger.log_error("partial_artifact_cleanup_failed", {
                "path": str(partial),
                "error": str(cleanup_error)
            })
        raise


def _keep_literal(cells) -> None:
    # openpyxl stores any "="-prefixed string as a formula
    for cell in cells:
        if isinstance(cell.value, str) and cell.value.startswith("="):
            cell.data_type = "s"


def build_workbook(rows: ExtractionResult, title: Optional[str] = None) -> Workbook:
    columns = table_columns(rows)
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = SHEET_TITLE

    if _has_title(title):
        worksheet.append([title])
        title_cell = worksheet.cell(row=1, column=1)
        _keep_literal([title_cell])
        title_cell.font = Font(bold=True, size=14)
        title_cell.alignment = _CENTER
        if len(columns) > 1:
            worksheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
        worksheet.append([])

    headers = [column.upper() for column in columns]
    worksheet.append(headers)
    header_row = worksheet.max_row
    _keep_literal(worksheet[header_row])
    for cell in worksheet[header_row]:
        cell.font = Font(bold=True)
        cell.alignment = _CENTER

    for row in rows:
        worksheet.append([row.get(column) for column in columns])
        _keep_literal(worksheet[worksheet.max_row])
        for cell in worksheet[worksheet.max_row]:
            cell.alignment = _CENTER

    # The merged title is excluded so it does not widen the first column
    for index, header in enumerate(headers, start=1):
        longest = max([len(header)] + [len(cell_text(row.get(columns[index - 1]))) for row in rows])
        worksheet.column_dimensions[get_column_letter(index)].width = longest + 2

    return workbook


def render_excel(rows: ExtractionResult, stem: str, output_dir: Path,
                 title: Optional[str] = None, created_at: Optional[int] = None) -> RenderedArtifact:
    filename = f"{stem}.xlsx"
    output_path = Path(output_dir) / filename
    try:
        workbook = build_workbook(rows, title)
        _write_atomically(output_path, lambda path: workbook.save(str(path)))
    except RenderFailure:
        raise
    except Exception as e:
        logger.log_error("excel_render_failed", {"filename": filename, "error": str(e)})
        raise RenderFailure(f"Failed to render spreadsheet {filename}: {e}") from e

    logger.log_artifact("xlsx", filename, len(rows))
    return RenderedArtifact(
        path=output_path,
        filename=filename,
        created_at=created_at if created_at is not None else current_millis(),
    )


def _pdf_styles():
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "TableTitle",
            parent=styles["Title"],
            fontName="Helvetica-Bold",
            fontSize=16,
            leading=20,
            alignment=TA_CENTER,
            spaceAfter=12,
        ),
        "header": ParagraphStyle(
            "TableHeader",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=12,
            leading=14,
        ),
        "body": ParagraphStyle(
            "TableBody",
            parent=styles["Normal"],
            fontName="Helvetica",
            fontSize=10,
            leading=12,
        ),
    }


def pdf_table_data(rows: ExtractionResult) -> List[List[str]]:
    """Header plus body rows as plain strings, in the order they are drawn."""
    columns = table_columns(rows)
    data = [[column.upper() for column in columns]]
    for row in rows:
        data.append([cell_text(row.get(column)) for column in columns])
    return data


def build_pdf_story(rows: ExtractionResult, title: Optional[str], available_width: float) -> list:
    styles = _pdf_styles()
    data = pdf_table_data(rows)

    story = []
    if _has_title(title):
        story.append(Paragraph(escape(title), styles["title"]))
        story.append(Spacer(1, 12))

    header, body = data[0], data[1:]
    cells = [[Paragraph(escape(text), styles["header"]) for text in header]]
    cells.extend([Paragraph(escape(text), styles["body"]) for text in line] for line in body)

    column_width = available_width / len(header)
    table = Table(cells, colWidths=[column_width] * len(header), repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    story.append(table)
    return story


def render_pdf(rows: ExtractionResult, stem: str, output_dir: Path,
               title: Optional[str] = None, created_at: Optional[int] = None) -> RenderedArtifact:
    filename = f"{stem}.pdf"
    output_path = Path(output_dir) / filename

    def _write(path: Path) -> None:
        doc = SimpleDocTemplate(
            str(path),
            pagesize=letter,
            leftMargin=PDF_MARGIN,
            rightMargin=PDF_MARGIN,
            topMargin=PDF_MARGIN,
            bottomMargin=PDF_MARGIN,
            title=title or filename,
        )
        doc.build(build_pdf_story(rows, title, doc.width))

    try:
        table_columns(rows)
        _write_atomically(output_path, _write)
    except RenderFailure:
        raise
    except Exception as e:
        logger.log_error("pdf_render_failed", {"filename": filename, "error": str(e)})
        raise RenderFailure(f"Failed to render PDF {filename}: {e}") from e

    logger.log_artifact("pdf", filename, len(rows))
    return RenderedArtifact(
        path=output_path,
        filename=filename,
        created_at=created_at if created_at is not None else current_millis(),
    )
