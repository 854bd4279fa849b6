#!/usr/bin/env python3
# main.py
"""
Tutor CLI for peer-review bookkeeping and submission handling.
- feedback      : count reviews given/received per student from <reviewer>-<submitter>.pdf files,
                  optionally merge with a previous feedback.csv, write the result back
- check-reviews : list review PDFs that look blank (PDF text, OCR fallback for scans)
- submissions   : extract downloaded submission archives, optionally run the plagiarism checker

Notes:
- Directories default to the values from .env / environment (see config.py).
- Errors are reported as "[ERROR] ..." on stderr with exit status 2.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional
from zipfile import BadZipFile

from config import Settings, load_settings
from feedback_helper import (
    FeedbackCsvError,
    FeedbackTable,
    format_feedback_table,
    merge_feedback,
    read_feedback_count_from_reviews,
    read_feedback_csv,
    students_below_minimum,
    write_feedback_csv,
)
from review_documents import DEFAULT_MIN_WORDS, find_blank_reviews
from submission_tools import (
    PlagiarismCheckError,
    UnsafeArchiveError,
    run_plagiarism_check,
    unzip_submissions,
)


def _error(msg: str) -> int:
    print(f"[ERROR] {msg}", file=sys.stderr)
    return 2


# --------------------------- Commands ---------------------------

def cmd_feedback(args: argparse.Namespace, settings: Settings) -> int:
    reviews_dir = Path(args.reviews).expanduser() if args.reviews else settings.reviews_dir
    if args.csv:
        csv_path = Path(args.csv).expanduser()
    elif args.reviews:
        csv_path = reviews_dir / settings.feedback_csv_name
    else:
        csv_path = settings.feedback_csv
    min_reviews = args.min_reviews if args.min_reviews is not None else settings.min_reviews

    try:
        scanned = read_feedback_count_from_reviews(reviews_dir)
    except FileNotFoundError as e:
        return _error(str(e))
    print(f"[INFO] Counted {sum(c.reviews_given for c in scanned.values())} reviews "
          f"from {len(scanned)} students in {reviews_dir}", file=sys.stderr)

    previous: FeedbackTable = {}
    if args.resume:
        try:
            previous = read_feedback_csv(csv_path)
            print(f"[INFO] Merging with {len(previous)} students from {csv_path}", file=sys.stderr)
        except FileNotFoundError:
            print(f"[WARN] No previous feedback file at {csv_path}; starting fresh.", file=sys.stderr)
        except FeedbackCsvError as e:
            return _error(f"{type(e).__name__}: {e}")

    table = merge_feedback(previous, scanned)
    write_feedback_csv(csv_path, table)

    print(format_feedback_table(table))
    if min_reviews > 0:
        missing = students_below_minimum(table, min_reviews)
        if missing:
            print(f"\n[WARN] {len(missing)} student(s) gave fewer than {min_reviews} review(s): "
                  f"{', '.join(missing)}", file=sys.stderr)
    print(f"\n[INFO] Wrote {csv_path}", file=sys.stderr)
    return 0


def cmd_check_reviews(args: argparse.Namespace, settings: Settings) -> int:
    reviews_dir = Path(args.reviews).expanduser() if args.reviews else settings.reviews_dir
    try:
        blank = find_blank_reviews(reviews_dir, min_words=args.min_words, max_pages=args.max_pages)
    except FileNotFoundError as e:
        return _error(str(e))

    if not blank:
        print(f"[INFO] No blank reviews in {reviews_dir}", file=sys.stderr)
        return 0

    print(f"[WARN] {len(blank)} review(s) look blank (< {args.min_words} words):", file=sys.stderr)
    for report in blank:
        detail = report.error or f"{report.word_count} words, {report.pages} page(s), {report.ocr_pages} OCR"
        print(f" - {report.file_name}  reviewer={report.relationship.reviewer_id}"
              f"  submitter={report.relationship.submitter_id}  [{detail}]")
    return 0


def cmd_submissions(args: argparse.Namespace, settings: Settings) -> int:
    submissions_dir = Path(args.dir).expanduser() if args.dir else settings.exercise_dir
    try:
        folders = unzip_submissions(submissions_dir, delete_archives=args.delete_archives)
    except (FileNotFoundError, BadZipFile, UnsafeArchiveError) as e:
        return _error(str(e))
    print(f"[INFO] Extracted {len(folders)} archive(s) in {submissions_dir}", file=sys.stderr)

    if args.plagiarism:
        jar = Path(args.jar).expanduser() if args.jar else settings.jplag_jar
        language = args.language or settings.jplag_language
        results = Path(args.results).expanduser() if args.results else None
        print(f"[INFO] Running plagiarism check ({language}) …", file=sys.stderr)
        try:
            results = run_plagiarism_check(submissions_dir, results, jar, language)
        except (FileNotFoundError, PlagiarismCheckError) as e:
            return _error(str(e))
        print(f"[INFO] Plagiarism results in {results}", file=sys.stderr)
    return 0


# --------------------------- CLI ---------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="review-tutor",
        description="Peer-review feedback counting and submission handling for course tutors.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file to load settings from (default: search from the current directory)."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fb = sub.add_parser(
        "feedback",
        help="Count reviews given/received per student and write feedback.csv.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    fb.add_argument("--reviews", default=None,
                    help="Folder with <reviewer>-<submitter>.pdf files (default: from config).")
    fb.add_argument("--csv", default=None,
                    help="Feedback CSV to write (default: <reviews>/feedback.csv).")
    fb.add_argument("--resume", action="store_true",
                    help="Add the counts to those already stored in the CSV instead of overwriting them.")
    fb.add_argument("--min-reviews", type=int, default=None,
                    help="Warn about students who gave fewer reviews than this (default: from config).")
    fb.set_defaults(func=cmd_feedback)

    chk = sub.add_parser(
        "check-reviews",
        help="List review PDFs that look blank.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    chk.add_argument("--reviews", default=None, help="Reviews folder (default: from config).")
    chk.add_argument("--min-words", type=int, default=DEFAULT_MIN_WORDS,
                     help="Reviews with fewer words are reported.")
    chk.add_argument("--max-pages", type=int, default=None, help="Only read the first N pages of each review.")
    chk.set_defaults(func=cmd_check_reviews)

    subs = sub.add_parser(
        "submissions",
        help="Extract submission archives and optionally check for plagiarism.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subs.add_argument("--dir", default=None, help="Folder with downloaded *.zip submissions (default: exercise dir).")
    subs.add_argument("--delete-archives", action="store_true", help="Delete each archive after extraction.")
    subs.add_argument("--plagiarism", action="store_true", help="Run the JPlag plagiarism checker afterwards.")
    subs.add_argument("--jar", default=None, help="Path to the JPlag jar (default: TUTOR_JPLAG_JAR).")
    subs.add_argument("--language", default=None, help="JPlag language (default: TUTOR_JPLAG_LANGUAGE).")
    subs.add_argument("--results", default=None, help="Folder for plagiarism results.")
    subs.set_defaults(func=cmd_submissions)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(dotenv_path=Path(args.env_file) if args.env_file else None)
    except ValueError as e:
        return _error(str(e))

    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
