# feedback_helper.py
"""
Peer-review feedback counting.

- Parses review filenames of the form <reviewer>-<submitter>.pdf
- Scans a reviews directory (non-recursive) into ReviewRelationship records
- Folds relationships into a FeedbackTable: student -> (reviews given, reviews received)
- Reads/writes the table as feedback.csv (studentId,reviewsGiven,reviewsReceived)

Notes:
- Student numbers are lower-cased by normalize_student_number() only.
- A table is a plain dict; merge_feedback() never mutates its arguments.
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from functools import reduce
from pathlib import Path
from typing import Dict, Iterable, List, Optional

REVIEW_EXTENSION = ".pdf"
CSV_HEADER: List[str] = ["studentId", "reviewsGiven", "reviewsReceived"]

_STUDENT_NUMBER_RE = re.compile(r"^[a-z0-9]+$")
_COUNT_RE = re.compile(r"^[0-9]+$")


# --------------------------- Errors ---------------------------

class DirectoryNotFoundError(FileNotFoundError):
    """The reviews directory is missing or is not a directory."""


class FeedbackCsvError(ValueError):
    """Base class for a persisted feedback file that breaks the CSV format."""


class EmptyFileError(FeedbackCsvError):
    pass


class MissingHeaderError(FeedbackCsvError):
    pass


class MalformedCountError(FeedbackCsvError):
    pass


class MalformedStudentIdError(FeedbackCsvError):
    pass


class DuplicateStudentError(FeedbackCsvError):
    pass


# --------------------------- Data Models ---------------------------

@dataclass(frozen=True)
class ReviewRelationship:
    """One review document: reviewer_id reviewed the submission of submitter_id."""
    reviewer_id: str
    submitter_id: str
    file_name: str


@dataclass(frozen=True)
class FeedbackCount:
    reviews_given: int = 0
    reviews_received: int = 0

    def __post_init__(self):
        if self.reviews_given < 0 or self.reviews_received < 0:
            raise ValueError(f"Feedback counts must be non-negative: {self}")

    def __add__(self, other: FeedbackCount) -> FeedbackCount:
        return FeedbackCount(
            reviews_given=self.reviews_given + other.reviews_given,
            reviews_received=self.reviews_received + other.reviews_received,
        )


FeedbackTable = Dict[str, FeedbackCount]


# --------------------------- Filename Parser ---------------------------

def normalize_student_number(student_number: str) -> str:
    return student_number.lower()


def parse_review_filename(file_name: str) -> Optional[ReviewRelationship]:
    """
    Parse '<reviewer>-<submitter>.pdf' into a ReviewRelationship.
    Returns None for anything else (other extension, missing separator, extra
    tokens, empty or non-alphanumeric student numbers, self-reviews).
    """
    if not file_name.lower().endswith(REVIEW_EXTENSION):
        return None

    stem = file_name[: -len(REVIEW_EXTENSION)]
    tokens = stem.split("-")
    if len(tokens) != 2:
        return None

    reviewer, submitter = (normalize_student_number(t) for t in tokens)
    if not _STUDENT_NUMBER_RE.match(reviewer) or not _STUDENT_NUMBER_RE.match(submitter):
        return None
    if reviewer == submitter:
        return None

    return ReviewRelationship(reviewer_id=reviewer, submitter_id=submitter, file_name=file_name)


# --------------------------- Directory Scanner ---------------------------

def read_all_reviews_from_dir(directory: Path) -> List[ReviewRelationship]:
    """
    Every valid review document directly inside `directory`, sorted by filename.
    Subdirectories and files with other names are skipped.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise DirectoryNotFoundError(f"Reviews directory not found or not a directory: {directory}")

    reviews: List[ReviewRelationship] = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if not entry.is_file():
            continue
        relationship = parse_review_filename(entry.name)
        if relationship is not None:
            reviews.append(relationship)
    return reviews


# --------------------------- Aggregation ---------------------------

def merge_feedback(*tables: FeedbackTable) -> FeedbackTable:
    """Key-wise sum of any number of tables. The empty table is the identity."""
    merged: FeedbackTable = {}
    for table in tables:
        for student, count in table.items():
            merged[student] = merged.get(student, FeedbackCount()) + count
    return merged


def relationship_to_table(relationship: ReviewRelationship) -> FeedbackTable:
    return merge_feedback(
        {relationship.reviewer_id: FeedbackCount(reviews_given=1)},
        {relationship.submitter_id: FeedbackCount(reviews_received=1)},
    )


def aggregate_feedback(relationships: Iterable[ReviewRelationship]) -> FeedbackTable:
    return reduce(merge_feedback, (relationship_to_table(r) for r in relationships), {})


def read_feedback_count_from_reviews(directory: Path) -> FeedbackTable:
    return aggregate_feedback(read_all_reviews_from_dir(directory))


# --------------------------- CSV Persistence ---------------------------

def _parse_count(value: str, line_no: int, column: str) -> int:
    cleaned = value.strip()
    if not _COUNT_RE.match(cleaned):
        raise MalformedCountError(f"Line {line_no}: {column} is not a non-negative integer: {value!r}")
    return int(cleaned)


def read_feedback_csv(path: Path) -> FeedbackTable:
    """
    Load a table written by write_feedback_csv().
    Raises FileNotFoundError, EmptyFileError, MissingHeaderError,
    MalformedCountError, MalformedStudentIdError or DuplicateStudentError.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Feedback file not found: {path}")
    if path.stat().st_size == 0:
        raise EmptyFileError(f"Feedback file is empty: {path}")

    table: FeedbackTable = {}
    with path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header != CSV_HEADER:
            raise MissingHeaderError(f"Expected header {','.join(CSV_HEADER)!r} in {path}")

        for row in reader:
            line_no = reader.line_num
            if not row:
                continue
            if len(row) != len(CSV_HEADER):
                raise MalformedCountError(
                    f"Line {line_no}: expected {len(CSV_HEADER)} columns, got {len(row)}"
                )
            given = _parse_count(row[1], line_no, CSV_HEADER[1])
            received = _parse_count(row[2], line_no, CSV_HEADER[2])
            student = normalize_student_number(row[0])
            if not _STUDENT_NUMBER_RE.match(student):
                raise MalformedStudentIdError(f"Line {line_no}: invalid student id {row[0]!r}")
            if student in table:
                raise DuplicateStudentError(f"Line {line_no}: student {student!r} listed twice")
            table[student] = FeedbackCount(reviews_given=given, reviews_received=received)
    return table


def write_feedback_csv(path: Path, table: FeedbackTable) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f, lineterminator="\n")
        w.writerow(CSV_HEADER)
        for student in sorted(table):
            count = table[student]
            w.writerow([student, count.reviews_given, count.reviews_received])


# --------------------------- Reporting helpers ---------------------------

def students_below_minimum(table: FeedbackTable, min_reviews: int) -> List[str]:
    """Students who reviewed fewer than `min_reviews` submissions, sorted."""
    return sorted(s for s, c in table.items() if c.reviews_given < min_reviews)


def format_feedback_table(table: FeedbackTable) -> str:
    if not table:
        return "(no reviews found)"
    width = max(len(CSV_HEADER[0]), *(len(s) for s in table))
    lines = [f"{CSV_HEADER[0]:<{width}}  given  received"]
    for student in sorted(table):
        count = table[student]
        lines.append(f"{student:<{width}}  {count.reviews_given:>5}  {count.reviews_received:>8}")
    return "\n".join(lines)
