# review_documents.py
"""
Looks inside peer-review PDFs to find reviews that are (nearly) empty.

- For PDFs: extract text; if a page is image-only, render -> OCR (if pytesseract available).
- A review counts as blank when it has fewer words than a threshold or cannot be opened.

Dependencies:
  pip install PyMuPDF pillow
  (optional for OCR) pip install pytesseract
  (and have Tesseract installed on your system for scanned reviews)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

# --- PDF & image handling ---
import fitz  # PyMuPDF
from PIL import Image

from feedback_helper import ReviewRelationship, read_all_reviews_from_dir

# --- Optional OCR (graceful fallback if unavailable) ---
try:
    import pytesseract
    OCR_AVAILABLE = True
except ImportError:
    OCR_AVAILABLE = False

UNREADABLE_PAGE = "[UNREADABLE_PAGE]"
DEFAULT_MIN_WORDS = 20


@dataclass
class ReviewDocumentReport:
    """What was found inside one review PDF."""
    relationship: ReviewRelationship
    pages: int = 0
    ocr_pages: int = 0
    word_count: int = 0
    error: str = ""

    @property
    def file_name(self) -> str:
        return self.relationship.file_name

    def is_blank(self, min_words: int = DEFAULT_MIN_WORDS) -> bool:
        return bool(self.error) or self.word_count < min_words


# ===================== Text extraction =====================

def _ocr_image_pil(img: Image.Image) -> str:
    if not OCR_AVAILABLE:
        return ""
    try:
        return pytesseract.image_to_string(img)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError):
        # Tesseract binary missing or failed on this page
        return ""


def _render_pdf_page_to_image(page: fitz.Page, dpi: int = 200) -> Image.Image:
    """Render a PDF page to a PIL Image at given DPI."""
    zoom = dpi / 72.0
    mat = fitz.Matrix(zoom, zoom)
    pix = page.get_pixmap(matrix=mat, alpha=False)
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


def extract_pdf_text_with_ocr_fallback(pdf_path: Path,
                                       max_pages: Optional[int] = None,
                                       dpi: int = 200) -> Tuple[str, int, int]:
    """
    Extract text from a PDF. For pages with little/no text, rasterize and OCR (if available).
    Returns: (combined_text, total_pages, ocr_pages_used)
    """
    with fitz.open(pdf_path) as doc:
        total = len(doc)
        parts: List[str] = []
        ocr_pages = 0
        limit = min(total, max_pages) if max_pages is not None else total

        for i in range(limit):
            page = doc[i]
            txt = (page.get_text("text") or "").strip()
            if len(txt) < 10:
                ocr_txt = _ocr_image_pil(_render_pdf_page_to_image(page, dpi=dpi)).strip()
                if ocr_txt:
                    ocr_pages += 1
                    txt = ocr_txt
                elif not txt:
                    txt = UNREADABLE_PAGE
            parts.append(txt)

    return "\n".join(parts), total, ocr_pages


def _count_words(text: str) -> int:
    return sum(1 for word in text.split() if word != UNREADABLE_PAGE)


# ===================== Review inspection =====================

def inspect_review(relationship: ReviewRelationship,
                   directory: Path,
                   *,
                   max_pages: Optional[int] = None) -> ReviewDocumentReport:
    report = ReviewDocumentReport(relationship=relationship)
    pdf_path = Path(directory) / relationship.file_name
    try:
        text, report.pages, report.ocr_pages = extract_pdf_text_with_ocr_fallback(pdf_path, max_pages=max_pages)
    except (RuntimeError, OSError) as e:  # PyMuPDF raises RuntimeError subclasses for broken files
        report.error = f"{type(e).__name__}: {e}"
        return report
    report.word_count = _count_words(text)
    return report


def inspect_reviews(directory: Path, *, max_pages: Optional[int] = None) -> List[ReviewDocumentReport]:
    """Inspect every valid review document in `directory` (see read_all_reviews_from_dir)."""
    return [
        inspect_review(r, directory, max_pages=max_pages)
        for r in read_all_reviews_from_dir(directory)
    ]


def find_blank_reviews(directory: Path,
                       min_words: int = DEFAULT_MIN_WORDS,
                       *,
                       max_pages: Optional[int] = None) -> List[ReviewDocumentReport]:
    return [
        report for report in inspect_reviews(directory, max_pages=max_pages)
        if report.is_blank(min_words)
    ]
