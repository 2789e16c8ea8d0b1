import logging
from datetime import datetime, timezone

from trellosync.AssignmentSync import ItemResult, Outcome, SyncReport, apply_plan, reconcile
from trellosync.Exceptions import RemoteError, TrelloSyncError
from trellosync.NotificationHelper import NotificationHelper


class CanvasToTrello:

    def __init__(self, trello_helper, canvas_helper, board_name, list_name, notify=True):
        self.trello_helper = trello_helper
        self.canvas_helper = canvas_helper
        self.board_name = board_name
        self.list_name = list_name
        self.notify = notify

    def run(self, now=None):
        logging.info("###################################################")
        logging.info("#           Canvas-Assignments-To-Trello          #")
        logging.info("###################################################")
        now = now or datetime.now(timezone.utc)

        user = self.canvas_helper.get_current_user()
        logging.info(f"# Syncing Canvas assignments for user: {user.name} (ID: {user.id})")

        assignments = self.canvas_helper.get_upcoming_assignments(now=now)
        logging.info(f"  - Found {len(assignments)} upcoming assignments")

        cards = self.trello_helper.get_all_board_cards(self.board_name)
        logging.info(f"  - Found {len(cards)} existing cards on {self.board_name} board")
        list_id = self.trello_helper.find_list_id(self.board_name, self.list_name)

        report = SyncReport("Canvas")
        for i, assignment in enumerate(assignments):
            logging.info(f"  {i + 1}. Assignment: \"{assignment.title}\"")
            report.add(self.sync_assignment(assignment, user.id, cards, list_id, now))

        logging.info("# Canvas sync completed!")
        self.sort_list(list_id)
        self.finish(report, len(assignments))
        return report

    def course_name(self, assignment):
        try:
            return self.canvas_helper.get_course_name(assignment.course_id)
        except RemoteError as e:
            logging.warning(f"     Warning: failed to get course name for {assignment.course_id}: {e}")
            return f"Course {assignment.course_id}"

    def grade(self, assignment, user_id):
        try:
            return self.canvas_helper.get_grade(assignment, user_id)
        except RemoteError as e:
            logging.warning(f"     Warning: failed to get submission for assignment {assignment.title}: {e}")
            return None

    def sync_assignment(self, assignment, user_id, cards, list_id, now):
        try:
            course_name = self.course_name(assignment)
            grade = self.grade(assignment, user_id)
            plan = reconcile(assignment, grade, cards, course_name, now)
            return apply_plan(self.trello_helper, plan, list_id)
        except TrelloSyncError as e:
            logging.warning(f"     Warning: failed to sync {assignment.title}: {e}")
            return ItemResult(assignment.title, Outcome.FAILED, str(e))

    def sort_list(self, list_id):
        logging.info("# Sorting cards by due date...")
        try:
            self.trello_helper.sort_cards_by_due_date(list_id)
        except TrelloSyncError as e:
            logging.warning(f"  - Warning: failed to sort cards by due date: {e}")

    def finish(self, report, total):
        report.log_summary()
        if not self.notify:
            return
        if report.changed:
            logging.info("New cards added or updated. Sending notification.")
            NotificationHelper.send_notification(
                f"Canvas to Trello (Total: {total})",
                f"Added {report.count(Outcome.CREATED)} & Updated {report.count(Outcome.UPDATED)}.\n"
                f"Up-to-Date {report.count(Outcome.UNCHANGED)} & Failed {report.count(Outcome.FAILED)}.")
        else:
            logging.info("No new cards added or updated. Skipping notification.")
