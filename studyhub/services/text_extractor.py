"""Text extraction for uploaded documents using PyMuPDF."""

import logging
import re

import pymupdf  # PyMuPDF

logger = logging.getLogger(__name__)

# Control characters that Postgres TEXT cannot store (NUL, etc.)
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_PDF_MAGIC = b"%PDF"


def _is_pdf(name: str, content_type: str | None, data: bytes) -> bool:
    return (
        content_type == "application/pdf"
        or name.lower().endswith(".pdf")
        or data.startswith(_PDF_MAGIC)
    )


class TextExtractor:
    """Turns raw document bytes into text for the generation prompt."""

    @staticmethod
    def extract_pdf_text(pdf_bytes: bytes) -> str:
        """
        Extract text from every page of a PDF.

        Raises:
            pymupdf.FileDataError: If the bytes are not a readable PDF
        """
        doc = pymupdf.open(stream=pdf_bytes, filetype="pdf")
        try:
            return "\n\n".join(page.get_text() for page in doc)
        finally:
            doc.close()

    def extract_text(self, name: str, data: bytes, content_type: str | None = None) -> str:
        """
        Decode a document to text.

        PDFs go through PyMuPDF; anything else is decoded as UTF-8 with
        replacement characters. Falls back to plain decoding when a file
        that looks like a PDF cannot be parsed.
        """
        text = None
        if _is_pdf(name, content_type, data):
            try:
                text = self.extract_pdf_text(data)
            except Exception:
                logger.warning("PDF extraction failed for %s, decoding as text", name, exc_info=True)
        if text is None:
            text = data.decode("utf-8", errors="replace")
        return _ILLEGAL_CHARS.sub("", text)


# Singleton instance
text_extractor = TextExtractor()
