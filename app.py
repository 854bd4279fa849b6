from pathlib import Path
from typing import Dict, List, Optional

from flask import Flask, jsonify, render_template, request
from werkzeug.utils import secure_filename

from feedback_helper import (
    aggregate_feedback,
    FeedbackCsvError,
    FeedbackTable,
    merge_feedback,
    parse_review_filename,
    read_all_reviews_from_dir,
    read_feedback_csv,
    write_feedback_csv,
)

BASE_DIR = Path(__file__).resolve().parent
APPDATA_DIR = BASE_DIR / "appdata"

REVIEWS_KEY = "reviews"
OUTPUTS_KEY = "outputs"
FEEDBACK_CSV_NAME = "feedback.csv"

app = Flask(__name__)

# Application state
uploaded_reviews: List[str] = []
status_message: str = "Idle"
assignment_title: str = ""


def _table_to_json(table: FeedbackTable) -> List[Dict[str, object]]:
    return [
        {
            "studentId": student,
            "reviewsGiven": table[student].reviews_given,
            "reviewsReceived": table[student].reviews_received,
        }
        for student in sorted(table)
    ]


def _assignment_root() -> Optional[Path]:
    if not assignment_title:
        return None
    return APPDATA_DIR / assignment_title


def _list_assignments() -> List[str]:
    if not APPDATA_DIR.exists():
        return []
    assignments = [
        item.name
        for item in APPDATA_DIR.iterdir()
        if item.is_dir()
    ]
    assignments.sort(key=lambda name: name.lower())
    return assignments


def _gather_review_files() -> Dict[str, object]:
    root = _assignment_root()
    folder = root / REVIEWS_KEY if root is not None else None
    if folder is None or not folder.is_dir():
        return {"files": [], "ignored": [], "exists": False}

    files: List[str] = []
    ignored: List[str] = []
    for item in sorted(folder.iterdir(), key=lambda p: p.name.lower()):
        if not item.is_file():
            continue
        if parse_review_filename(item.name) is None:
            ignored.append(item.name)
        else:
            files.append(item.name)
    return {"files": files, "ignored": ignored, "exists": True}


def _load_assignment_feedback(assignment_root: Path) -> FeedbackTable:
    csv_path = assignment_root / OUTPUTS_KEY / FEEDBACK_CSV_NAME
    if not csv_path.is_file():
        return {}
    return read_feedback_csv(csv_path)


def _build_state_payload() -> Dict[str, object]:
    root = _assignment_root()
    feedback: FeedbackTable = {}
    feedback_error = ""
    if root is not None:
        try:
            feedback = _load_assignment_feedback(root)
        except FeedbackCsvError as e:
            feedback_error = f"{type(e).__name__}: {e}"
    return {
        "status": status_message,
        "uploadedReviews": uploaded_reviews,
        "reviewFiles": _gather_review_files(),
        "assignments": _list_assignments(),
        "assignmentTitle": assignment_title,
        "feedback": _table_to_json(feedback),
        "feedbackError": feedback_error,
    }


@app.route("/")
def index():
    return render_template(
        "index.html",
        status=status_message,
        assignments=_list_assignments(),
        assignment_title=assignment_title,
        review_files=_gather_review_files(),
    )


@app.route("/state")
def get_state():
    return jsonify(_build_state_payload())


@app.route("/assignment/select", methods=["POST"])
def select_assignment():
    global assignment_title

    payload = request.get_json(silent=True) or {}
    raw_title = payload.get("assignmentTitle") or payload.get("title") or ""
    requested_title = (raw_title or "").strip()
    if not requested_title:
        return jsonify({"message": "assignmentTitle is required."}), 400

    safe_title = secure_filename(requested_title)
    if not safe_title:
        return (
            jsonify(
                {
                    "message": "Title must include letters or numbers after removing unsafe characters.",
                }
            ),
            400,
        )

    assignment_path = APPDATA_DIR / safe_title
    if not assignment_path.exists() or not assignment_path.is_dir():
        return jsonify({"message": "Assignment not found."}), 404

    assignment_title = safe_title
    uploaded_reviews.clear()

    return jsonify(_build_state_payload())


@app.route("/upload/reviews", methods=["POST"])
def upload_reviews():
    global assignment_title

    raw_title = request.form.get("assignmentTitle")
    if raw_title is None:
        raw_title = request.form.get("title", "")
    title = (raw_title or "").strip()
    if not title:
        return jsonify({"message": "A title is required."}), 400

    safe_title = secure_filename(title)
    if not safe_title:
        return jsonify({"message": "Title must include letters or numbers after removing unsafe characters."}), 400

    assignment_title = safe_title
    uploaded_reviews.clear()

    files = request.files.getlist("files")
    if not files:
        return jsonify({"message": "No files uploaded."}), 400

    target_dir = APPDATA_DIR / assignment_title / REVIEWS_KEY
    target_dir.mkdir(parents=True, exist_ok=True)

    stored = []
    skipped = []
    for file_storage in files:
        filename = secure_filename(file_storage.filename or "")
        if not filename or parse_review_filename(filename) is None:
            skipped.append(file_storage.filename or "")
            continue
        file_storage.save(target_dir / filename)
        stored.append(filename)

    if not stored:
        return jsonify({"message": "No valid review files uploaded.", "skipped": skipped}), 400

    uploaded_reviews.extend(stored)
    return jsonify(
        {
            "message": "Files uploaded successfully.",
            "files": stored,
            "skipped": skipped,
            "assignmentTitle": assignment_title,
        }
    )


@app.route("/clear/reviews", methods=["POST"])
def clear_reviews():
    root = _assignment_root()
    if root is None:
        return jsonify({"message": "No assignment selected."}), 400

    target_dir = root / REVIEWS_KEY
    if target_dir.is_dir():
        for item in target_dir.iterdir():
            if item.is_file():
                item.unlink()
    uploaded_reviews.clear()

    return jsonify({"message": "Cleared."})


@app.route("/action/count-feedback", methods=["POST"])
def action_count_feedback():
    global status_message
    root = _assignment_root()
    if root is None:
        status_message = "No assignment selected"
        return jsonify({"message": "No assignment selected."}), 400

    try:
        reviews = read_all_reviews_from_dir(root / REVIEWS_KEY)
    except FileNotFoundError:
        status_message = "No reviews uploaded"
        return jsonify({"message": "No reviews uploaded for this assignment."}), 404

    table = aggregate_feedback(reviews)
    csv_path = root / OUTPUTS_KEY / FEEDBACK_CSV_NAME
    write_feedback_csv(csv_path, table)

    status_message = "Feedback counts generated"
    return jsonify(
        {
            "status": status_message,
            "csvPath": f"appdata/{assignment_title}/{OUTPUTS_KEY}/{FEEDBACK_CSV_NAME}",
            "totalReviews": len(reviews),
            "feedback": _table_to_json(table),
        }
    )


@app.route("/feedback/summary")
def feedback_summary():
    """Course totals: every assignment's feedback.csv merged together."""
    tables: List[FeedbackTable] = []
    included: List[str] = []
    for title in _list_assignments():
        try:
            table = _load_assignment_feedback(APPDATA_DIR / title)
        except FeedbackCsvError as e:
            return jsonify({"message": f"{title}: {type(e).__name__}: {e}"}), 400
        if table:
            tables.append(table)
            included.append(title)

    merged = merge_feedback(*tables)
    return jsonify({"assignments": included, "feedback": _table_to_json(merged)})


if __name__ == "__main__":
    APPDATA_DIR.mkdir(parents=True, exist_ok=True)
    app.run(debug=True)
