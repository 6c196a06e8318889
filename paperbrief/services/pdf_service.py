"""PDF text extraction and page rendering.

A PDF with no text layer produces an empty string here; callers fall back to
rendering pages as images for the vision model.
"""
from __future__ import annotations

import io
import logging
import re
from typing import List, Tuple

import PyPDF2
from PIL import Image

try:
    import fitz  # PyMuPDF
except Exception:
    fitz = None

from paperbrief.services.image_service import normalize_pil_image

logger = logging.getLogger(__name__)

RENDER_DPI = 160


def extract_pdf_text(pdf_bytes: bytes, max_pages: int = 20) -> str:
    try:
        reader = PyPDF2.PdfReader(io.BytesIO(pdf_bytes))
        parts: List[str] = []
        for i, page in enumerate(reader.pages):
            if i >= max_pages:
                break
            parts.append(page.extract_text() or "")
    except Exception as e:
        logger.info("PDF text extraction failed: %s", e)
        return ""
    return re.sub(r"\s+", " ", " ".join(parts)).strip()


def rasterize_ready() -> bool:
    return fitz is not None


def rasterize_pdf_pages(
    pdf_bytes: bytes,
    max_pages: int = 2,
    max_width: int = 1400,
    quality: int = 80,
) -> List[Tuple[str, bytes]]:
    """Render the first ``max_pages`` pages to normalized JPEGs.

    Returns an empty list when rendering is not possible for this input.
    """
    if not rasterize_ready():
        logger.warning("PDF rasterization unavailable: PyMuPDF not installed")
        return []
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        logger.warning("Could not open PDF for rendering: %s", e)
        return []

    out: List[Tuple[str, bytes]] = []
    try:
        try:
            total = doc.page_count or 1
        except Exception:
            total = 1
        for i in range(min(total, max_pages)):
            try:
                page = doc.load_page(i)
                pix = page.get_pixmap(dpi=RENDER_DPI, alpha=False)
                img = Image.open(io.BytesIO(pix.tobytes("png")))
                out.append(normalize_pil_image(img, max_width=max_width, quality=quality))
            except Exception as e:
                logger.warning("Rendering page %d failed: %s", i + 1, e)
    finally:
        doc.close()
    return out
