"""Tests for the Canvas client and the Canvas to Trello run."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from canvasapi.exceptions import CanvasException

from conftest import FakeResponse, FakeSession, FakeTrello
from trellosync.AssignmentSync import Outcome
from trellosync.CanvasToTrello import CanvasToTrello
from trellosync.Exceptions import RemoteError
from trellosync.helpers.CanvasHelper import CanvasHelper
from trellosync.models import Grade, RemoteAssignment

NOW = datetime(2025, 9, 15, 12, 0, tzinfo=timezone.utc)


class FakeCanvas:
    def __init__(self, courses=None, fail=False):
        self.courses = courses or [SimpleNamespace(id=7, name="Biology")]
        self.fail = fail
        self.course_calls = 0

    def get_current_user(self):
        if self.fail:
            raise CanvasException("Invalid access token")
        return SimpleNamespace(id=42, name="Student", email="s@example.com", login_id="student")

    def get_courses(self, enrollment_state=None):
        self.course_calls += 1
        return self.courses


def assignment_json(assignment_id, due_at, points=100):
    return {"id": assignment_id, "name": f"Assignment {assignment_id}", "description": "",
            "course_id": 7, "due_at": due_at, "html_url": f"https://canvas.example/a/{assignment_id}",
            "points_possible": points}


def make_helper(*responses, canvas=None):
    session = FakeSession(*responses)
    return CanvasHelper("token ", "https://canvas.example/", session=session, canvas=canvas or FakeCanvas()), session


class TestCanvasHelper:
    def test_bearer_header_and_url(self):
        helper, session = make_helper(FakeResponse([]))
        helper.get_assignments(7)
        request = session.requests[0]
        assert request.url == "https://canvas.example/api/v1/courses/7/assignments"
        assert request.kwargs["headers"] == {"Authorization": "Bearer token"}
        assert request.params == {"per_page": "100"}

    def test_unauthorized(self):
        helper, _ = make_helper(FakeResponse(status_code=401))
        with pytest.raises(RemoteError, match="Unauthorized"):
            helper.get_assignments(7)

    def test_current_user_error_is_remote_error(self):
        helper, _ = make_helper(canvas=FakeCanvas(fail=True))
        with pytest.raises(RemoteError, match="Invalid access token"):
            helper.test_connection()

    def test_courses_loaded_once(self):
        canvas = FakeCanvas()
        helper, _ = make_helper(canvas=canvas)
        assert helper.get_course_name(7) == "Biology"
        assert helper.get_course_name(8) == "Course 8"
        assert canvas.course_calls == 1

    def test_upcoming_window(self):
        helper, _ = make_helper(FakeResponse([
            assignment_json(1, "2025-09-20T18:00:00Z"),
            assignment_json(2, "2025-10-30T18:00:00Z"),
            assignment_json(3, None),
            assignment_json(4, "not a date"),
            assignment_json(5, "2025-09-14T18:00:00Z"),
            assignment_json(6, "2025-09-10T18:00:00Z"),
        ]))
        upcoming = helper.get_upcoming_assignments(now=NOW)
        assert [a.source_id for a in upcoming] == [1, 5]

    def test_failed_course_is_skipped(self):
        canvas = FakeCanvas(courses=[SimpleNamespace(id=7, name="Biology"), SimpleNamespace(id=8, name="Math")])
        helper, _ = make_helper(FakeResponse(status_code=500),
                                FakeResponse([assignment_json(1, "2025-09-20T18:00:00Z")]),
                                canvas=canvas)
        assert len(helper.get_upcoming_assignments(now=NOW)) == 1

    @pytest.mark.parametrize("points, expected", [(100, 85.0), (50, 170.0), (None, 85.0)])
    def test_grade_scale(self, points, expected):
        helper, _ = make_helper(FakeResponse({"score": 85}))
        assignment = RemoteAssignment.from_canvas(assignment_json(1, "2025-09-20T18:00:00Z", points))
        assert helper.get_grade(assignment, 42).percentage == pytest.approx(expected)

    def test_ungraded_submission(self):
        helper, _ = make_helper(FakeResponse({"score": None}))
        assignment = RemoteAssignment.from_canvas(assignment_json(1, "2025-09-20T18:00:00Z"))
        assert helper.get_grade(assignment, 42) is None


class FakeCanvasHelper:
    def __init__(self, assignments, grades):
        self.assignments = assignments
        self.grades = grades

    def get_current_user(self):
        return SimpleNamespace(id=42, name="Student")

    def get_upcoming_assignments(self, now=None):
        return self.assignments

    def get_course_name(self, course_id):
        return "Biology"

    def get_grade(self, assignment, user_id):
        grade = self.grades.get(assignment.source_id)
        if isinstance(grade, Exception):
            raise grade
        return grade


class TestCanvasToTrello:
    @pytest.fixture
    def assignments(self):
        return [RemoteAssignment.from_canvas(assignment_json(1, "2025-09-22T18:00:00Z")),
                RemoteAssignment.from_canvas(assignment_json(2, "2025-09-18T18:00:00Z"))]

    def test_run_creates_and_sorts(self, assignments):
        trello = FakeTrello()
        canvas = FakeCanvasHelper(assignments, {1: Grade(85, 100)})
        report = CanvasToTrello(trello, canvas, "Makai School", "Weekly", notify=False).run(now=NOW)

        assert report.count(Outcome.CREATED) == 2
        assert ("sort", "l2") in trello.calls
        names = [c.name for c in trello.get_cards_in_list("l2")]
        assert names == ["Biology - Assignment 2", "REDO - Biology - Assignment 1"]

    def test_rerun_is_unchanged(self, assignments):
        trello = FakeTrello()
        canvas = FakeCanvasHelper(assignments, {})
        CanvasToTrello(trello, canvas, "Makai School", "Weekly", notify=False).run(now=NOW)
        report = CanvasToTrello(trello, canvas, "Makai School", "Weekly", notify=False).run(now=NOW)

        assert report.count(Outcome.UNCHANGED) == 2
        assert trello.count("create") == 2

    def test_grade_error_still_syncs(self, assignments):
        trello = FakeTrello()
        canvas = FakeCanvasHelper(assignments, {1: RemoteError("Canvas", "GET failed", 500)})
        report = CanvasToTrello(trello, canvas, "Makai School", "Weekly", notify=False).run(now=NOW)
        assert report.count(Outcome.CREATED) == 2

    def test_one_failure_does_not_stop_batch(self, assignments):
        trello = FakeTrello()
        trello.fail_titles.add("Biology - Assignment 1")
        report = CanvasToTrello(trello, FakeCanvasHelper(assignments, {}), "Makai School", "Weekly",
                                notify=False).run(now=NOW)
        assert report.count(Outcome.FAILED) == 1
        assert report.count(Outcome.CREATED) == 1
