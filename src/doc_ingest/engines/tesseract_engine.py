"""Image OCR using Tesseract through pytesseract and Pillow."""

from __future__ import annotations

import logging
from pathlib import Path

from doc_ingest.engines.base import CapabilityUnavailable, OcrEngine, OcrOutput

logger = logging.getLogger(__name__)


class TesseractEngine(OcrEngine):
    """OcrEngine backed by a local Tesseract install.

    Args:
        tesseract_cmd: Tesseract executable; anything other than the default
            ``"tesseract"`` is configured on pytesseract before each call.
    """

    def __init__(self, tesseract_cmd: str = "tesseract") -> None:
        self._tesseract_cmd = tesseract_cmd

    @property
    def source_tag(self) -> str:
        return "tesseract-ocr"

    def recognize(self, image_path: Path, language: str) -> OcrOutput:
        try:
            import pytesseract
            from PIL import Image
        except ImportError as e:
            raise CapabilityUnavailable("pytesseract", str(e)) from e

        # Configure tesseract executable path if non-default
        if self._tesseract_cmd != "tesseract":
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd

        try:
            with Image.open(image_path) as img:
                text = pytesseract.image_to_string(img, lang=language)
                data = pytesseract.image_to_data(
                    img, lang=language, output_type=pytesseract.Output.DICT
                )
        except pytesseract.TesseractNotFoundError as e:
            raise CapabilityUnavailable("tesseract", str(e)) from e

        # conf is -1 for layout rows (blocks, lines) that carry no word
        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if word.strip() and float(conf) >= 0
        ]
        confidence = sum(confidences) / len(confidences) if confidences else 0.0

        logger.debug(
            "Tesseract recognised %d words (mean confidence %.1f) in %s",
            len(confidences),
            confidence,
            image_path.name,
        )
        return OcrOutput(
            text=text,
            confidence=round(confidence, 2),
            word_count=len(confidences),
        )
