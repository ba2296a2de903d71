import os
import unittest
from pathlib import Path
from unittest import mock

from doc_table_export.config import SERVICE_DIR, Settings


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.APP_PORT, 5000)
        self.assertEqual(settings.GEMINI_MODEL, "gemini-1.5-flash")
        self.assertEqual(settings.RETENTION_SECONDS, 3600)
        self.assertEqual(settings.SWEEP_INTERVAL_SECONDS, 600)
        self.assertIsNone(settings.GEMINI_API_KEY)
        self.assertEqual(settings.public_url_prefix, "/public")
        self.assertEqual(settings.upload_dir_path, (SERVICE_DIR / "uploads").resolve())

    def test_port_and_api_key_aliases(self):
        with mock.patch.dict(os.environ, {"PORT": "8080", "API_KEY": "abc"}, clear=True):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.APP_PORT, 8080)
        self.assertEqual(settings.GEMINI_API_KEY, "abc")

    def test_absolute_directories_are_kept(self):
        with mock.patch.dict(os.environ, {"PUBLIC_DIR": "/srv/exports", "PUBLIC_URL_PREFIX": "files/"}, clear=True):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.public_dir_path, Path("/srv/exports"))
        self.assertEqual(settings.public_url_prefix, "/files")

    def test_cors_origins_list(self):
        with mock.patch.dict(os.environ, {"CORS_ORIGINS": "http://a.test, http://b.test"}, clear=True):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.cors_origins_list, ["http://a.test", "http://b.test"])


if __name__ == '__main__':
    unittest.main()
