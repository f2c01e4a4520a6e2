"""
Text and page-image extraction.

- Text: pdfplumber for PDFs, UTF-8 decode for plain text uploads
- Page images: PyMuPDF renders each PDF page to PNG; single images
  (PNG/JPEG uploads) are stored as page 1

Extraction never raises: a document that cannot be read yields empty text
or no pages, and the failure is logged.
"""

import io
import logging
from typing import List

import pdfplumber
import pymupdf

from priorart.models.records import PageImage
from priorart.storage import get_storage

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"
IMAGE_SIGNATURES = {
    b"\x89PNG\r\n\x1a\n": ("png", "image/png"),
    b"\xff\xd8\xff": ("jpg", "image/jpeg"),
}


def is_pdf(raw_bytes: bytes) -> bool:
    return raw_bytes[:4] == PDF_MAGIC


def extract_text(raw_bytes: bytes) -> str:
    """
    Extract plain text from a document.

    Returns:
        Extracted text, or "" if the document cannot be read
    """
    if not raw_bytes:
        return ""

    if not is_pdf(raw_bytes):
        try:
            return raw_bytes.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            logger.error(f"Text extraction failed: {e}")
            return ""

    pages = []
    try:
        with pdfplumber.open(io.BytesIO(raw_bytes)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        return ""

    return "\n".join(pages).strip()


class PageImageExtractor:
    """
    Renders diagram sheets to PNG and stores them in the page image store.

    Usage:
        extractor = PageImageExtractor()
        pages = extractor.extract(raw_bytes, filing_id="abc")
        # [PageImage(page=1, locator="local://abc/pages/page_1.png"), ...]
    """

    def __init__(self, storage=None, zoom: float = 2.0):
        self.storage = storage or get_storage()
        self.zoom = zoom

    def extract(self, raw_bytes: bytes, filing_id: str) -> List[PageImage]:
        if not raw_bytes:
            return []

        for signature, (extension, content_type) in IMAGE_SIGNATURES.items():
            if raw_bytes.startswith(signature):
                key = f"{filing_id}/pages/page_1.{extension}"
                return [PageImage(page=1, locator=self.storage.put(key, raw_bytes, content_type))]

        if not is_pdf(raw_bytes):
            logger.warning(f"Diagram document for {filing_id} is neither PDF nor image")
            return []

        pages = []
        try:
            doc = pymupdf.open(stream=raw_bytes, filetype="pdf")
            try:
                matrix = pymupdf.Matrix(self.zoom, self.zoom)
                for index, page in enumerate(doc, 1):
                    pixmap = page.get_pixmap(matrix=matrix)
                    key = f"{filing_id}/pages/page_{index}.png"
                    locator = self.storage.put(key, pixmap.tobytes("png"), "image/png")
                    pages.append(PageImage(page=index, locator=locator))
            finally:
                doc.close()
        except Exception as e:
            logger.error(f"Page rendering failed for {filing_id}: {e}")
            return []

        return pages
