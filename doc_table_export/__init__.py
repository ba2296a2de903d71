"""Table extraction and Excel/PDF export service."""

__version__ = "1.0.0"
