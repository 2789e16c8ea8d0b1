import logging
from datetime import datetime, timezone

from trellosync.AssignmentSync import ItemResult, Outcome, SyncReport, apply_plan, reconcile
from trellosync.Exceptions import TrelloSyncError
from trellosync.helpers.MoodleHelper import MoodleHelper
from trellosync.NotificationHelper import NotificationHelper


class MoodleToTrello:
    """
    Mirrors Moodle assignments and quizzes onto the school board.
    Assignments that already have a passing grade are not tracked.
    """

    def __init__(self, trello_helper, moodle_helper, board_name, list_name, dry_run=False, notify=True):
        self.trello_helper = trello_helper
        self.moodle_helper = moodle_helper
        self.board_name = board_name
        self.list_name = list_name
        self.dry_run = dry_run
        self.notify = notify

    def lookup_grade(self, assignment, grades=None):
        """
        Grades only come from exported test data for now. Live grade lookup
        (MoodleHelper.get_grade) is not called during sync until its submission
        payloads have been checked against a real site.
        """
        if grades:
            return grades.get(assignment.source_id)
        return None

    def run(self, to_date, now=None):
        logging.info("# Starting Moodle/Open LMS sync...")
        assignments, course_names = self.moodle_helper.get_upcoming_assignments(to_date, now=now)
        logging.info(f"  - Found {len(assignments)} Moodle assignments due by {to_date:%Y-%m-%d}")
        return self.sync(assignments, course_names, now=now)

    def run_from_file(self, path, now=None):
        logging.info(f"# Starting Moodle sync from test data: {path}")
        assignments, course_names, grades = MoodleHelper.load_test_data(path)
        logging.info(f"  - Loaded {len(assignments)} Moodle assignments")
        return self.sync(assignments, course_names, grades, now=now)

    def export(self, path, to_date, now=None):
        assignments, course_names = self.moodle_helper.get_upcoming_assignments(to_date, now=now)
        MoodleHelper.export_test_data(path, assignments, course_names)
        return assignments

    def sync(self, assignments, course_names, grades=None, now=None):
        now = now or datetime.now(timezone.utc)

        cards = self.trello_helper.get_all_board_cards(self.board_name)
        logging.info(f"  - Found {len(cards)} existing cards on {self.board_name} board")

        list_id = None
        if not self.dry_run:
            list_id = self.trello_helper.find_list_id(self.board_name, self.list_name)

        report = SyncReport("Moodle", dry_run=self.dry_run)
        for assignment in assignments:
            course_name = course_names.get(assignment.course_id) or f"Course {assignment.course_id}"
            grade = self.lookup_grade(assignment, grades)
            try:
                plan = reconcile(assignment, grade, cards, course_name, now, skip_passing=True)
                result = apply_plan(self.trello_helper, plan, list_id, dry_run=self.dry_run)
            except TrelloSyncError as e:
                logging.warning(f"  - Warning: failed to sync {assignment.title}: {e}")
                result = ItemResult(assignment.title, Outcome.FAILED, str(e))
            report.add(result)

        logging.info("# Moodle sync completed!")
        if not self.dry_run:
            logging.info("# Sorting cards by due date...")
            try:
                self.trello_helper.sort_cards_by_due_date(list_id)
            except TrelloSyncError as e:
                logging.warning(f"  - Warning: failed to sort cards by due date: {e}")

        report.log_summary()
        if self.notify and report.changed and not self.dry_run:
            NotificationHelper.send_notification(
                f"Moodle to Trello (Total: {len(assignments)})",
                f"Added {report.count(Outcome.CREATED)} & Updated {report.count(Outcome.UPDATED)}.\n"
                f"Skipped {report.count(Outcome.SKIPPED)} & Failed {report.count(Outcome.FAILED)}.")
        return report
