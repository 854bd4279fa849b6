# config.py
"""
Settings for the tutor tools, read from the environment (a .env file is loaded first).

TUTOR_BASE_DIR          course folder (default: current directory)
TUTOR_EXERCISE_SUBDIR   exercise folder below the base dir (default: none)
TUTOR_REVIEWS_SUBDIR    reviews folder below the exercise dir (default: reviews)
TUTOR_FEEDBACK_CSV      feedback file name inside the reviews dir (default: feedback.csv)
TUTOR_JPLAG_JAR         path to the JPlag jar used for plagiarism checks
TUTOR_JPLAG_LANGUAGE    JPlag language option (default: java)
TUTOR_MIN_REVIEWS       reviews every student is expected to give (default: 0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


@dataclass
class Settings:
    base_dir: Path
    exercise_subdir: str
    reviews_subdir: str
    feedback_csv_name: str
    jplag_jar: Optional[Path]
    jplag_language: str
    min_reviews: int

    @property
    def exercise_dir(self) -> Path:
        return self.base_dir / self.exercise_subdir if self.exercise_subdir else self.base_dir

    @property
    def reviews_dir(self) -> Path:
        return self.exercise_dir / self.reviews_subdir

    @property
    def feedback_csv(self) -> Path:
        return self.reviews_dir / self.feedback_csv_name


def _read_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None,
                  dotenv_path: Optional[Path] = None) -> Settings:
    """Build Settings from `env` (defaults to os.environ after loading .env)."""
    if env is None:
        load_dotenv(dotenv_path=dotenv_path)
        env = os.environ

    jar = env.get("TUTOR_JPLAG_JAR", "").strip()
    return Settings(
        base_dir=Path(env.get("TUTOR_BASE_DIR", ".") or ".").expanduser(),
        exercise_subdir=env.get("TUTOR_EXERCISE_SUBDIR", "").strip(),
        reviews_subdir=env.get("TUTOR_REVIEWS_SUBDIR", "").strip() or "reviews",
        feedback_csv_name=env.get("TUTOR_FEEDBACK_CSV", "").strip() or "feedback.csv",
        jplag_jar=Path(jar).expanduser() if jar else None,
        jplag_language=env.get("TUTOR_JPLAG_LANGUAGE", "").strip() or "java",
        min_reviews=_read_int(env, "TUTOR_MIN_REVIEWS", 0),
    )
