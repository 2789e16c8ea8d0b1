import logging
from datetime import datetime, timedelta, timezone

import requests
from canvasapi import Canvas
from canvasapi.exceptions import CanvasException

from trellosync.Exceptions import RemoteError
from trellosync.Utils import p_info, p_success
from trellosync.models import Grade, RemoteAssignment

# Submissions only carry a score; when the assignment has no points_possible we read it as a percentage
DEFAULT_POINTS_POSSIBLE = 100.0


class CanvasHelper:
    def __init__(self, api_key, canvas_api_heading, session=None, canvas=None):
        self.api_key = api_key.strip()
        self.canvas_api_heading = canvas_api_heading.rstrip("/")
        self.header = {"Authorization": f"Bearer {self.api_key}"}
        self.session = session or requests.Session()
        self.canvas = canvas or Canvas(self.canvas_api_heading, self.api_key)
        self.courses_id_name_dict = None
        p_info("# CanvasHelper: Initialized")
        logging.info(f"  - Canvas API Heading: {self.canvas_api_heading}")

    def _get(self, endpoint, params=None):
        url = f"{self.canvas_api_heading}/api/v1{endpoint}"
        try:
            response = self.session.get(url, headers=self.header, params=params)
        except requests.exceptions.RequestException as e:
            raise RemoteError("Canvas", f"GET {endpoint} failed: {e}") from e

        if response.status_code == 401:
            raise RemoteError("Canvas", "Unauthorized! Check Canvas API Key", 401)
        if response.status_code != 200:
            raise RemoteError("Canvas", f"GET {endpoint} failed with status {response.status_code}",
                              response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError("Canvas", f"GET {endpoint} returned invalid JSON") from e

    def get_current_user(self):
        try:
            return self.canvas.get_current_user()
        except CanvasException as e:
            raise RemoteError("Canvas", f"failed to get current user: {e}") from e

    def test_connection(self):
        user = self.get_current_user()
        p_success("Canvas connection successful!")
        logging.info(f"  User: {user.name} ({getattr(user, 'email', '')})")
        logging.info(f"  Login ID: {getattr(user, 'login_id', '')}")
        logging.info(f"  Canvas User ID: {user.id}")
        return user

    def get_courses(self):
        """
        Loads the active courses once per run and remembers their names.
        """
        if self.courses_id_name_dict is not None:
            return self.courses_id_name_dict

        logging.info("# Fetching courses from Canvas:")
        courses = {}
        try:
            for c in self.canvas.get_courses(enrollment_state="active"):
                try:
                    courses[c.id] = c.name
                except AttributeError:
                    logging.info("  - Skipping invalid course entry.")
        except CanvasException as e:
            raise RemoteError("Canvas", f"failed to get courses: {e}") from e

        logging.info(f"=> Found {len(courses)} courses")
        self.courses_id_name_dict = courses
        return courses

    def get_course_name(self, course_id):
        return self.get_courses().get(course_id, f"Course {course_id}")

    def get_assignments(self, course_id):
        data = self._get(f"/courses/{course_id}/assignments", params={"per_page": "100"})
        return [RemoteAssignment.from_canvas(a) for a in data]

    def get_submission(self, course_id, assignment_id, user_id):
        return self._get(f"/courses/{course_id}/assignments/{assignment_id}/submissions/{user_id}")

    def get_grade(self, assignment, user_id):
        """Returns the Grade for a scored submission, None when it has not been graded."""
        submission = self.get_submission(assignment.course_id, assignment.source_id, user_id)
        score = submission.get("score")
        if score is None:
            return None
        points = assignment.points_possible or DEFAULT_POINTS_POSSIBLE
        return Grade(score=float(score), max_score=float(points))

    def get_upcoming_assignments(self, days=14, now=None):
        """
        Iterates over the active courses and collects the assignments due between
        yesterday and `days` days from now. Undated assignments are ignored.
        """
        now = now or datetime.now(timezone.utc)
        window_end = now + timedelta(days=days)
        window_start = now - timedelta(days=1)

        logging.info("# Loading assignments from Canvas")
        upcoming = []
        for course_id, course_name in self.get_courses().items():
            try:
                assignments = self.get_assignments(course_id)
            except RemoteError as e:
                logging.warning(f"  - Warning: failed to get assignments for course {course_name}: {e}")
                continue

            for assignment in assignments:
                if not assignment.due_raw:
                    continue
                if assignment.due is None:
                    logging.warning(f"  - Warning: failed to parse due date for assignment {assignment.title}")
                    continue
                if window_start < assignment.due < window_end:
                    upcoming.append(assignment)
        return upcoming
