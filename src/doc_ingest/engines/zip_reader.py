"""Direct ZIP container access using the standard library."""

from __future__ import annotations

import io
import zipfile

from doc_ingest.engines.base import ZipReader


class StdlibZipReader(ZipReader):
    """ZipReader backed by :mod:`zipfile`; needs no optional library."""

    def open(self, data: bytes) -> zipfile.ZipFile:
        return zipfile.ZipFile(io.BytesIO(data))

    def read_entry(self, archive: zipfile.ZipFile, path: str) -> str:
        return archive.read(path).decode("utf-8", errors="replace")
