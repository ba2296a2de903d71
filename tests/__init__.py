import os
import tempfile

# Point storage and logs at a scratch directory before the service settings load
_TEST_ROOT = tempfile.mkdtemp(prefix="doc_table_export_tests_")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("PUBLIC_DIR", os.path.join(_TEST_ROOT, "public"))
os.environ.setdefault("LOG_DIR", os.path.join(_TEST_ROOT, "logs"))
os.environ.setdefault("SWEEPER_ENABLED", "false")
