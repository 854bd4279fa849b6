import sys
from pathlib import Path

import fitz
import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import review_documents
from feedback_helper import parse_review_filename

LONG_REVIEW = (
    "The submission implements the parser correctly but the error handling "
    "around empty input is missing and two of the unit tests are skipped. "
    "Naming is consistent and the README explains how to run the program."
)


def _write_pdf(path: Path, pages) -> None:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(72, 72, 540, 720), text, fontname="helv", fontsize=11)
    doc.save(path)
    doc.close()


@pytest.fixture(autouse=True)
def no_ocr(monkeypatch):
    monkeypatch.setattr(review_documents, "OCR_AVAILABLE", False)


@pytest.fixture()
def review_dir(tmp_path):
    reviews = tmp_path / "reviews"
    reviews.mkdir()
    _write_pdf(reviews / "s1-s2.pdf", [LONG_REVIEW])
    _write_pdf(reviews / "s2-s1.pdf", [""])
    _write_pdf(reviews / "s3-s1.pdf", ["Looks good.", ""])
    (reviews / "s4-s2.pdf").write_bytes(b"")
    _write_pdf(reviews / "review.pdf", [""])
    return reviews


def test_extract_pdf_text_counts_pages(review_dir):
    text, pages, ocr_pages = review_documents.extract_pdf_text_with_ocr_fallback(review_dir / "s3-s1.pdf")
    assert pages == 2
    assert ocr_pages == 0
    assert "Looks good." in text
    assert review_documents.UNREADABLE_PAGE in text


def test_extract_respects_max_pages(review_dir):
    text, pages, _ = review_documents.extract_pdf_text_with_ocr_fallback(review_dir / "s3-s1.pdf", max_pages=1)
    assert pages == 2
    assert review_documents.UNREADABLE_PAGE not in text


def test_ocr_used_for_image_only_pages(review_dir, monkeypatch):
    monkeypatch.setattr(review_documents, "_ocr_image_pil", lambda img: "scanned handwritten review text")
    text, pages, ocr_pages = review_documents.extract_pdf_text_with_ocr_fallback(review_dir / "s2-s1.pdf")
    assert (pages, ocr_pages) == (1, 1)
    assert "scanned handwritten review text" in text


def test_inspect_review_counts_words(review_dir):
    rel = parse_review_filename("s1-s2.pdf")
    report = review_documents.inspect_review(rel, review_dir)
    assert report.pages == 1
    assert report.word_count == len(LONG_REVIEW.split())
    assert not report.is_blank(20)
    assert report.file_name == "s1-s2.pdf"


def test_inspect_review_reports_unreadable_file(review_dir):
    rel = parse_review_filename("s4-s2.pdf")
    report = review_documents.inspect_review(rel, review_dir)
    assert report.error
    assert report.is_blank(0)


def test_find_blank_reviews(review_dir):
    blank = review_documents.find_blank_reviews(review_dir, min_words=20)
    assert [r.file_name for r in blank] == ["s2-s1.pdf", "s3-s1.pdf", "s4-s2.pdf"]


def test_find_blank_reviews_with_low_threshold(review_dir):
    blank = review_documents.find_blank_reviews(review_dir, min_words=1)
    assert [r.file_name for r in blank] == ["s2-s1.pdf", "s4-s2.pdf"]


def test_find_blank_reviews_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        review_documents.find_blank_reviews(tmp_path / "missing")
