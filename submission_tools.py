# submission_tools.py
"""
Helpers for downloaded submissions:
- unzip_submissions(): extract every <name>.zip into a sibling folder <name>/
- run_plagiarism_check(): run the JPlag jar over a submissions folder
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import List, Optional
from zipfile import BadZipFile, ZipFile

from feedback_helper import DirectoryNotFoundError

SKIP_ARCHIVE_DIRS = {"__MACOSX"}


class UnsafeArchiveError(ValueError):
    """A zip member would be written outside its target folder."""


class PlagiarismCheckError(RuntimeError):
    pass


# --------------------------- Archives ---------------------------

def _filtered_extract(zip_file: ZipFile, dest: Path) -> None:
    """Extract all members except macOS metadata, refusing paths that leave `dest`."""
    dest_resolved = dest.resolve()
    for member in zip_file.namelist():
        if Path(member).parts and Path(member).parts[0] in SKIP_ARCHIVE_DIRS:
            continue
        target = (dest / member).resolve()
        if target != dest_resolved and dest_resolved not in target.parents:
            raise UnsafeArchiveError(f"Refusing to extract {member!r} outside {dest}")
        zip_file.extract(member, dest)


def unzip_submissions(directory: Path, *, delete_archives: bool = False) -> List[Path]:
    """
    Extract each top-level *.zip in `directory` into a folder named after the archive.
    Returns the extracted folders, sorted by name.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise DirectoryNotFoundError(f"Submissions directory not found or not a directory: {directory}")

    extracted: List[Path] = []
    archives = sorted(
        (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".zip"),
        key=lambda p: p.name.lower(),
    )
    for archive in archives:
        dest = directory / archive.stem
        dest.mkdir(parents=True, exist_ok=True)
        try:
            with ZipFile(archive) as zf:
                _filtered_extract(zf, dest)
        except BadZipFile as e:
            raise BadZipFile(f"{archive.name}: {e}") from e
        if delete_archives:
            archive.unlink()
        extracted.append(dest)
    return extracted


# --------------------------- Plagiarism check ---------------------------

def build_plagiarism_command(submissions_dir: Path,
                             results_dir: Path,
                             jar_path: Path,
                             language: str = "java",
                             java: str = "java") -> List[str]:
    return [
        java, "-jar", str(jar_path),
        "-l", language,
        "-r", str(results_dir),
        str(submissions_dir),
    ]


def run_plagiarism_check(submissions_dir: Path,
                         results_dir: Optional[Path],
                         jar_path: Optional[Path],
                         language: str = "java",
                         java: str = "java") -> Path:
    """
    Run JPlag on `submissions_dir`. Results go to `results_dir`
    (default: a "<name>-plagiarism" folder next to it). Returns the results path.
    """
    submissions_dir = Path(submissions_dir)
    if not submissions_dir.is_dir():
        raise DirectoryNotFoundError(f"Submissions directory not found or not a directory: {submissions_dir}")
    if jar_path is None or not Path(jar_path).is_file():
        raise PlagiarismCheckError(f"Plagiarism checker jar not found: {jar_path}")
    if shutil.which(java) is None:
        raise PlagiarismCheckError(f"Java executable not found: {java}")

    if results_dir:
        results = Path(results_dir)
    else:
        resolved = submissions_dir.resolve()
        results = resolved.with_name(f"{resolved.name}-plagiarism")
    results.parent.mkdir(parents=True, exist_ok=True)

    cmd = build_plagiarism_command(submissions_dir, results, Path(jar_path), language, java)
    proc = subprocess.run(cmd, capture_output=True, text=True)
    if proc.returncode != 0:
        detail = (proc.stderr or proc.stdout or "").strip()
        raise PlagiarismCheckError(f"Plagiarism checker exited with {proc.returncode}: {detail}")
    return results
