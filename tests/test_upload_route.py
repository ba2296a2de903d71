import unittest

import pdfplumber
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from doc_table_export.config import settings
from doc_table_export.exceptions import ExtractionFailure
from doc_table_export.main import app
from doc_table_export.routes.upload import PROCESSING_FAILED, get_pipeline
from doc_table_export.services.pipeline_service import TableExportPipeline
from doc_table_export.services.upload_service import UploadService

ROWS = [
    {"date": "01/02/2024", "item": "Saline", "qty": "10mL"},
    {"date": "02/02/2024", "item": "Gauze", "qty": 4},
]


class FakeExtractor:
    def __init__(self, rows=None, error=None):
        self.rows = rows
        self.error = error
        self.calls = []

    async def extract_table(self, file_path, mime_type, display_name=None):
        self.calls.append((file_path, mime_type, display_name))
        if self.error:
            raise self.error
        return self.rows


class TestUploadRoute(unittest.TestCase):

    def setUp(self):
        self.extractor = FakeExtractor(rows=ROWS)
        pipeline = TableExportPipeline(
            uploads=UploadService(storage_root=settings.upload_dir_path),
            extractor=self.extractor,
            output_dir=settings.public_dir_path,
            url_prefix=settings.public_url_prefix,
        )
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def _post(self, filename="invoice.png", title="Invoice"):
        return self.client.post(
            "/api/v1/upload",
            files={"file": (filename, b"\x89PNG fake", "image/png")},
            data={"title": title},
        )

    def test_upload_returns_both_download_links(self):
        response = self._post()

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertRegex(body["excelFileUrl"], r"^/public/\d+-invoice-[0-9a-f]{6}\.xlsx$")
        self.assertRegex(body["pdfFileUrl"], r"^/public/\d+-invoice-[0-9a-f]{6}\.pdf$")
        self.assertEqual(body["excelFileUrl"][:-5], body["pdfFileUrl"][:-4])

        _, mime_type, display_name = self.extractor.calls[0]
        self.assertEqual(mime_type, "image/png")
        self.assertEqual(display_name, "invoice.png")

        excel_path = settings.public_dir_path / body["excelFileUrl"].rsplit("/", 1)[1]
        sheet = load_workbook(excel_path).active
        self.assertEqual(sheet["A1"].value, "Invoice")
        self.assertIn("A1:C1", [str(rng) for rng in sheet.merged_cells.ranges])
        self.assertEqual([c.value for c in sheet[3]], ["DATE", "ITEM", "QTY"])
        self.assertEqual(sheet.max_row, 3 + len(ROWS))

        pdf_path = settings.public_dir_path / body["pdfFileUrl"].rsplit("/", 1)[1]
        with pdfplumber.open(pdf_path) as pdf:
            text = pdf.pages[0].extract_text()
        self.assertIn("Invoice", text)
        self.assertIn("Saline", text)
        self.assertIn("Gauze", text)

    def test_generated_files_are_downloadable(self):
        body = self._post().json()

        download = self.client.get(body["pdfFileUrl"])

        self.assertEqual(download.status_code, 200)
        self.assertTrue(download.content.startswith(b"%PDF"))

    def test_unversioned_upload_and_root_downloads(self):
        response = self.client.post(
            "/upload",
            files={"file": ("invoice.png", b"\x89PNG fake", "image/png")},
            data={"title": "Invoice"},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        excel = self.client.get(body["excelFileUrl"].replace("/public", ""))
        pdf = self.client.get(body["pdfFileUrl"].replace("/public", ""))
        self.assertEqual(excel.status_code, 200)
        self.assertEqual(pdf.status_code, 200)
        self.assertTrue(pdf.content.startswith(b"%PDF"))
        self.assertEqual(self.client.get("/").json()["message"], settings.SERVICE_NAME)

    def test_unhandled_error_uses_the_same_generic_message(self):
        def broken_pipeline():
            raise RuntimeError("pipeline wiring broke")

        app.dependency_overrides[get_pipeline] = broken_pipeline
        client = TestClient(app, raise_server_exceptions=False)

        response = self._post_with(client)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": PROCESSING_FAILED})
        self.assertNotIn("wiring", response.text)

    def _post_with(self, client):
        return client.post(
            "/api/v1/upload",
            files={"file": ("invoice.png", b"\x89PNG fake", "image/png")},
            data={"title": "Invoice"},
        )

    def test_missing_file_is_client_error(self):
        response = self.client.post("/api/v1/upload", data={"title": "Invoice"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "No file uploaded.")
        self.assertEqual(self.extractor.calls, [])

    def test_unsupported_extension_is_rejected_before_extraction(self):
        response = self._post(filename="notes.docx")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.extractor.calls, [])

    def test_extraction_failure_is_reported_generically(self):
        self.extractor.error = ExtractionFailure("Model response is not valid JSON: secret detail")

        response = self._post()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": PROCESSING_FAILED})
        self.assertNotIn("secret detail", response.text)

    def test_empty_extraction_is_reported_generically(self):
        self.extractor.rows = []

        response = self._post()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": PROCESSING_FAILED})

    def test_health_and_root(self):
        health = self.client.get("/api/v1/health")
        self.assertEqual(health.status_code, 200)
        self.assertEqual(health.json()["status"], "healthy")

        root = self.client.get("/")
        self.assertEqual(root.json()["endpoints"]["upload"], "/api/v1/upload")

    def test_lifespan_creates_storage_directories(self):
        with TestClient(app) as client:
            self.assertEqual(client.get("/api/v1/health").status_code, 200)
        self.assertTrue(settings.upload_dir_path.is_dir())
        self.assertTrue(settings.public_dir_path.is_dir())


if __name__ == '__main__':
    unittest.main()
