import json
import logging
import re
from datetime import datetime, timedelta, timezone

import requests

from trellosync.Exceptions import ConfigError, RemoteError
from trellosync.Utils import p_info
from trellosync.models import Grade, RemoteAssignment

# Quiz attempts do not always carry the quiz total; fall back to a 100-point scale
DEFAULT_QUIZ_MAX_GRADE = 100.0


class MoodleHelper:
    """
    Client for the Moodle / Open LMS mobile web services.
    Requires a token for the "moodle_mobile_app" service.
    """

    def __init__(self, base_url, token, session=None):
        self.base_url = base_url.rstrip("/")
        self.token = token.strip()
        self.session = session or requests.Session()
        p_info("# MoodleHelper: Initialized")
        logging.info(f"  - Moodle URL: {self.base_url}")

    def _request(self, wsfunction, params=None):
        params = dict(params or {})
        params.update({"wstoken": self.token, "wsfunction": wsfunction, "moodlewsrestformat": "json"})
        try:
            response = self.session.get(f"{self.base_url}/webservice/rest/server.php", params=params)
        except requests.exceptions.RequestException as e:
            raise RemoteError("Moodle", f"{wsfunction} failed: {e}") from e

        if response.status_code != 200:
            raise RemoteError("Moodle", f"{wsfunction} failed with status {response.status_code}",
                              response.status_code)
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteError("Moodle", f"{wsfunction} returned invalid JSON") from e

        if isinstance(body, dict) and "exception" in body and "errorcode" in body:
            raise RemoteError("Moodle", f"{body.get('errorcode')}: {body.get('message', '')}")
        return body

    @staticmethod
    def _course_params(course_ids):
        return {f"courseids[{i}]": str(course_id) for i, course_id in enumerate(course_ids)}

    def get_site_info(self):
        """Returns the Moodle user id of the token owner."""
        return int(self._request("core_webservice_get_site_info")["userid"])

    def get_courses(self, user_id):
        return self._request("core_enrol_get_users_courses", {"userid": str(user_id)})

    def get_assignments(self, course_ids):
        if not course_ids:
            return [], {}
        body = self._request("mod_assign_get_assignments", self._course_params(course_ids))

        assignments = []
        course_names = {}
        for course in body.get("courses", []):
            course_names[course["id"]] = course.get("fullname", "")
            for a in course.get("assignments", []):
                a = dict(a, course=course["id"])
                assignments.append(RemoteAssignment.from_moodle(a, "assignment"))

        assignments.sort(key=lambda a: a.due.timestamp() if a.due else 0)
        return assignments, course_names

    def get_quizzes(self, course_ids):
        if not course_ids:
            return [], {}
        body = self._request("mod_quiz_get_quizzes_by_courses", self._course_params(course_ids))

        course_names = {}
        try:
            for course in self.get_courses(self.get_site_info()):
                course_names[course["id"]] = course.get("fullname", "")
        except RemoteError as e:
            logging.warning(f"  - Warning: failed to look up quiz course names: {e}")

        quizzes = [RemoteAssignment.from_moodle(q, "quiz") for q in body.get("quizzes", [])]
        quizzes.sort(key=lambda a: a.due.timestamp() if a.due else 0)
        return quizzes, course_names

    def get_upcoming_assignments(self, to_date, now=None):
        """
        Returns assignments and quizzes due between yesterday and the day after
        to_date, plus a course id -> name map.
        """
        now = now or datetime.now(timezone.utc)
        user_id = self.get_site_info()
        course_ids = [c["id"] for c in self.get_courses(user_id)]

        assignments, names = self.get_assignments(course_ids)
        try:
            quizzes, quiz_names = self.get_quizzes(course_ids)
        except RemoteError as e:
            logging.warning(f"  - Warning: failed to get quizzes: {e}")
            quizzes, quiz_names = [], {}
        names.update(quiz_names)

        window_start = now - timedelta(hours=24)
        window_end = to_date + timedelta(hours=24)
        upcoming = [a for a in assignments + quizzes
                    if a.due is not None and window_start < a.due < window_end]
        return upcoming, names

    def get_grade(self, item_id, course_id, user_id, kind):
        if kind == "quiz":
            body = self._request("mod_quiz_get_user_attempts", {"quizid": str(item_id), "userid": str(user_id)})
            return self.parse_quiz_grade(body, user_id)
        body = self._request("mod_assign_get_submissions", {"assignmentids[0]": str(item_id)})
        return self.parse_assignment_grade(body, user_id)

    @staticmethod
    def parse_quiz_grade(body, user_id):
        if not isinstance(body, dict):
            logging.info(f"  - Debug: unexpected quiz attempts response: {body}")
            return None
        for attempt in body.get("attempts", []):
            if attempt.get("userid") != user_id or attempt.get("state") != "finished":
                continue
            if attempt.get("sumgrades") is None:
                continue
            max_grade = DEFAULT_QUIZ_MAX_GRADE
            quiz = attempt.get("quiz")
            if isinstance(quiz, dict) and quiz.get("sumgrades") is not None:
                max_grade = float(quiz["sumgrades"])
            return Grade(score=float(attempt["sumgrades"]), max_score=max_grade)
        return None

    @staticmethod
    def parse_assignment_grade(body, user_id):
        for assignment in body.get("assignments", []):
            for submission in assignment.get("submissions", []):
                if submission.get("userid") != user_id or submission.get("grade") is None:
                    continue
                match = re.match(r"\s*(-?\d+(?:\.\d+)?)", str(submission["grade"]))
                value = float(match.group(1)) if match else 0.0
                max_grade = float(submission.get("assignment", {}).get("grade") or 0)
                return Grade(score=value, max_score=max_grade)
        return None

    @staticmethod
    def export_test_data(path, assignments, course_names, grades=None):
        """Writes fetched Moodle data to a JSON file that load_test_data can replay."""
        document = {
            "assignments": [a.to_moodle_dict() for a in assignments],
            "course_names": {str(k): v for k, v in course_names.items()},
            "grades": {str(k): {"grade": g.score, "grademax": g.max_score} for k, g in (grades or {}).items()},
        }
        with open(path, 'w') as f:
            json.dump(document, f, indent=2)
        logging.info(f"  - Exported {len(assignments)} Moodle assignments to {path}")

    @staticmethod
    def load_test_data(path):
        """Null or incomplete grade entries are left out, so those items sync as ungraded."""
        try:
            with open(path) as f:
                document = json.load(f)
            assignments = [RemoteAssignment.from_moodle(a, a.get("type", "assignment"))
                           for a in document.get("assignments", [])]
            course_names = {int(k): v for k, v in document.get("course_names", {}).items()}
            raw_grades = dict(document.get("grades") or {})
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise ConfigError("moodle_test_file", f"Invalid Moodle test data file {path}: {e}") from e

        grades = {}
        for item_id, g in raw_grades.items():
            try:
                grades[int(item_id)] = Grade(score=float(g["grade"]), max_score=float(g["grademax"]))
            except (KeyError, TypeError, ValueError):
                logging.info(f"  - Ignoring incomplete grade for item {item_id}: {g}")
        return assignments, course_names, grades
