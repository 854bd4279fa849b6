import csv
import io
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import app
from feedback_helper import FeedbackCount, write_feedback_csv


@pytest.fixture()
def isolated_appdata(tmp_path, monkeypatch):
    appdata_dir = tmp_path / "appdata"
    appdata_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setattr(app, "APPDATA_DIR", appdata_dir)
    monkeypatch.setattr(app, "assignment_title", "UE01", raising=False)
    monkeypatch.setattr(app, "status_message", "Idle", raising=False)
    app.uploaded_reviews.clear()

    yield appdata_dir


@pytest.fixture()
def client(isolated_appdata):
    with app.app.test_client() as client:
        yield client


def _seed_reviews(appdata_dir: Path, title: str, names) -> Path:
    reviews_dir = appdata_dir / title / app.REVIEWS_KEY
    reviews_dir.mkdir(parents=True, exist_ok=True)
    for name in names:
        (reviews_dir / name).write_bytes(b"%PDF-1.4\n")
    return reviews_dir


def test_count_feedback_writes_assignment_csv(isolated_appdata, client):
    _seed_reviews(isolated_appdata, "UE01", ["s1-s2.pdf", "s2-s1.pdf", "s3-s1.pdf", "s4-s2.pdf", "notes.pdf"])

    response = client.post("/action/count-feedback")

    assert response.status_code == 200
    body = response.get_json()
    assert body["totalReviews"] == 4
    assert body["feedback"][0] == {"studentId": "s1", "reviewsGiven": 1, "reviewsReceived": 2}

    summary_path = isolated_appdata / "UE01" / app.OUTPUTS_KEY / app.FEEDBACK_CSV_NAME
    with summary_path.open(newline="", encoding="utf-8") as csvfile:
        rows = list(csv.reader(csvfile))

    assert rows[0] == ["studentId", "reviewsGiven", "reviewsReceived"]
    assert rows[1:] == [["s1", "1", "2"], ["s2", "2", "1"], ["s3", "1", "0"], ["s4", "1", "0"]]


def test_count_feedback_twice_gives_same_counts(isolated_appdata, client):
    _seed_reviews(isolated_appdata, "UE01", ["s1-s2.pdf", "s2-s1.pdf"])

    first = client.post("/action/count-feedback").get_json()["feedback"]
    second = client.post("/action/count-feedback").get_json()["feedback"]

    assert first == second


def test_count_feedback_requires_assignment(isolated_appdata, client, monkeypatch):
    monkeypatch.setattr(app, "assignment_title", "")
    response = client.post("/action/count-feedback")
    assert response.status_code == 400


def test_count_feedback_without_reviews_folder(isolated_appdata, client):
    response = client.post("/action/count-feedback")
    assert response.status_code == 404


def test_upload_reviews_stores_only_review_files(isolated_appdata, client):
    data = {
        "assignmentTitle": "UE02",
        "files": [
            (io.BytesIO(b"%PDF-1.4\n"), "S1-S2.pdf"),
            (io.BytesIO(b"%PDF-1.4\n"), "review.pdf"),
        ],
    }
    response = client.post("/upload/reviews", data=data, content_type="multipart/form-data")

    assert response.status_code == 200
    body = response.get_json()
    assert body["files"] == ["S1-S2.pdf"]
    assert body["skipped"] == ["review.pdf"]
    assert (isolated_appdata / "UE02" / app.REVIEWS_KEY / "S1-S2.pdf").exists()
    assert app.assignment_title == "UE02"


def test_upload_reviews_rejects_only_invalid_files(isolated_appdata, client):
    data = {"assignmentTitle": "UE02", "files": [(io.BytesIO(b"x"), "notes.txt")]}
    response = client.post("/upload/reviews", data=data, content_type="multipart/form-data")
    assert response.status_code == 400


def test_upload_requires_title(isolated_appdata, client):
    data = {"files": [(io.BytesIO(b"x"), "s1-s2.pdf")]}
    response = client.post("/upload/reviews", data=data, content_type="multipart/form-data")
    assert response.status_code == 400


def test_select_assignment(isolated_appdata, client):
    _seed_reviews(isolated_appdata, "UE03", ["s1-s2.pdf", "stray.pdf"])

    response = client.post("/assignment/select", json={"assignmentTitle": "UE03"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["assignmentTitle"] == "UE03"
    assert body["reviewFiles"] == {"files": ["s1-s2.pdf"], "ignored": ["stray.pdf"], "exists": True}
    assert client.post("/assignment/select", json={"assignmentTitle": "missing"}).status_code == 404
    assert client.post("/assignment/select", json={}).status_code == 400


def test_clear_reviews(isolated_appdata, client):
    reviews_dir = _seed_reviews(isolated_appdata, "UE01", ["s1-s2.pdf"])
    response = client.post("/clear/reviews")
    assert response.status_code == 200
    assert not any(reviews_dir.iterdir())


def test_state_reports_broken_feedback_file(isolated_appdata, client):
    outputs = isolated_appdata / "UE01" / app.OUTPUTS_KEY
    outputs.mkdir(parents=True)
    (outputs / app.FEEDBACK_CSV_NAME).write_text("s1,1,1\n", encoding="utf-8")

    body = client.get("/state").get_json()

    assert body["feedback"] == []
    assert body["feedbackError"].startswith("MissingHeaderError")


def test_feedback_summary_merges_assignments(isolated_appdata, client):
    write_feedback_csv(
        isolated_appdata / "UE01" / app.OUTPUTS_KEY / app.FEEDBACK_CSV_NAME,
        {"s1": FeedbackCount(1, 2), "s2": FeedbackCount(2, 1)},
    )
    write_feedback_csv(
        isolated_appdata / "UE02" / app.OUTPUTS_KEY / app.FEEDBACK_CSV_NAME,
        {"s1": FeedbackCount(1, 0), "s3": FeedbackCount(0, 1)},
    )
    (isolated_appdata / "UE03").mkdir()

    body = client.get("/feedback/summary").get_json()

    assert body["assignments"] == ["UE01", "UE02"]
    assert body["feedback"] == [
        {"studentId": "s1", "reviewsGiven": 2, "reviewsReceived": 2},
        {"studentId": "s2", "reviewsGiven": 2, "reviewsReceived": 1},
        {"studentId": "s3", "reviewsGiven": 0, "reviewsReceived": 1},
    ]


def test_index_renders(isolated_appdata, client):
    _seed_reviews(isolated_appdata, "UE01", ["s1-s2.pdf"])
    response = client.get("/")
    assert response.status_code == 200
    assert b"s1-s2.pdf" in response.data
