import io
import tempfile
import unittest
from pathlib import Path

from fastapi import UploadFile

from doc_table_export.exceptions import InputRejected
from doc_table_export.services.upload_service import UploadService, mime_type_for, safe_base_name


class TestMimeTypeInference(unittest.TestCase):

    def test_supported_extensions(self):
        self.assertEqual(mime_type_for("scan.pdf"), "application/pdf")
        self.assertEqual(mime_type_for("scan.JPG"), "image/jpeg")
        self.assertEqual(mime_type_for("scan.jpeg"), "image/jpeg")
        self.assertEqual(mime_type_for("scan.png"), "image/png")

    def test_unsupported_extensions(self):
        self.assertIsNone(mime_type_for("report.docx"))
        self.assertIsNone(mime_type_for("noextension"))
        self.assertIsNone(mime_type_for("image.tiff"))

    def test_safe_base_name_strips_paths_and_odd_characters(self):
        self.assertEqual(safe_base_name("../../etc/lab results.png"), "lab_results")
        self.assertEqual(safe_base_name("C:\\scans\\form 1.pdf"), "form_1")
        self.assertEqual(safe_base_name("???.png"), "upload")


class TestUploadService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.storage_root = Path(self.tmp.name) / "uploads"
        self.service = UploadService(storage_root=self.storage_root, max_file_size_mb=1)

    async def test_persist_writes_bytes_and_metadata(self):
        upload = UploadFile(file=io.BytesIO(b"%PDF-1.4 data"), filename="Ward Chart.PDF")

        uploaded = await self.service.persist(upload)

        self.assertEqual(uploaded.mime_type, "application/pdf")
        self.assertEqual(uploaded.original_filename, "Ward Chart.PDF")
        self.assertEqual(uploaded.base_name, "Ward_Chart")
        self.assertEqual(uploaded.path.parent, self.storage_root)
        self.assertTrue(uploaded.path.name.endswith(".pdf"))
        self.assertEqual(uploaded.path.read_bytes(), b"%PDF-1.4 data")

    async def test_missing_file_is_rejected(self):
        with self.assertRaises(InputRejected):
            await self.service.persist(None)

    async def test_unsupported_extension_is_rejected_before_writing(self):
        upload = UploadFile(file=io.BytesIO(b"PK"), filename="notes.docx")

        with self.assertRaises(InputRejected):
            await self.service.persist(upload)

        self.assertFalse(self.storage_root.exists())

    async def test_oversized_file_is_rejected(self):
        upload = UploadFile(file=io.BytesIO(b"x" * (1024 * 1024 + 1)), filename="big.png")

        with self.assertRaises(InputRejected):
            await self.service.persist(upload)

    async def test_two_uploads_with_same_name_get_distinct_paths(self):
        first = await self.service.persist(UploadFile(file=io.BytesIO(b"a"), filename="scan.png"))
        second = await self.service.persist(UploadFile(file=io.BytesIO(b"b"), filename="scan.png"))

        self.assertNotEqual(first.path, second.path)


if __name__ == '__main__':
    unittest.main()
