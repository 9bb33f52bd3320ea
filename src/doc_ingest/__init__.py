"""Document ingestion and quality-scored text extraction for the editor."""

__version__ = "0.1.0"
