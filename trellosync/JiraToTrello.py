import logging

from trellosync.AssignmentSync import ItemResult, Outcome, SyncReport
from trellosync.Exceptions import NotFoundError, RemoteError, TrelloSyncError
from trellosync.helpers import JiraHelper as jira
from trellosync.Utils import p_success


def find_card_by_task_id(cards, task_id):
    for card in cards:
        if task_id in card.name:
            return card
    return None


class JiraToTrello:
    """
    Two-way sync between local JIRA task folders and a Trello board:
    the card's list drives the local/JIRA status, the task files drive the card.
    """

    def __init__(self, trello_helper, jira_helper, board_name):
        self.trello_helper = trello_helper
        self.jira_helper = jira_helper
        self.board_name = board_name

    def run(self, tasks_dir):
        logging.info(f"# Syncing JIRA tasks from {tasks_dir}")
        board = self.trello_helper.find_board(self.board_name)
        lists = self.trello_helper.get_lists(board.id)
        if not lists:
            raise NotFoundError(f"no lists found on {board.name} board")
        cards = self.trello_helper.get_board_cards(board.id)
        list_names = {li.id: li.name for li in lists}

        default_list = lists[0]
        logging.info(f"  - Using list '{default_list.name}' for new cards")

        tasks = jira.parse_tasks(tasks_dir)
        logging.info(f"  - Found {len(tasks)} JIRA tasks")

        report = SyncReport("JIRA")
        for task in tasks:
            logging.info(f"  Processing task: {task.id}")
            card = find_card_by_task_id(cards, task.id)
            try:
                if card is None:
                    report.add(self.create_card(task, default_list.id))
                else:
                    report.add(self.update_card(task, card, list_names, tasks_dir))
            except TrelloSyncError as e:
                logging.warning(f"    Warning: failed to sync task {task.id}: {e}")
                report.add(ItemResult(task.id, Outcome.FAILED, str(e)))

        report.log_summary()
        return report

    def update_card(self, task, card, list_names, tasks_dir):
        logging.info(f"    Found existing card: {card.name}")
        duplicate = f"{task.id}:"
        if card.name.count(duplicate) > 1:
            fixed_title = card.name.replace(f"{task.id}: ", "", 1)
            try:
                self.trello_helper.update_card_title(card.id, fixed_title)
                p_success("    Fixed duplicate title")
            except RemoteError as e:
                logging.warning(f"    Warning: failed to fix card title: {e}")

        list_name = list_names.get(card.list_id)
        if list_name is not None:
            new_status = jira.map_list_to_local_status(list_name)
            try:
                jira.update_local_status(tasks_dir, task.id, new_status)
                task.status = new_status
                logging.info(f"    Updated local status to: {new_status} (from {list_name} list)")
            except OSError as e:
                logging.warning(f"    Warning: failed to update local status: {e}")

            try:
                moved_to = self.jira_helper.update_status(task.id, jira.map_list_to_jira_status(list_name))
                if moved_to:
                    logging.info(f"    Updated JIRA status to: {moved_to}")
            except RemoteError as e:
                logging.warning(f"    Warning: failed to update JIRA status: {e}")

        self.trello_helper.update_card_description(card.id, jira.build_card_description(task))
        logging.info("    Updated card description")
        self.label_bug(task, card.id)
        return ItemResult(card.name, Outcome.UPDATED)

    def create_card(self, task, list_id):
        logging.info("    Creating new card for task")
        title = task.title if task.title.startswith(f"{task.id}:") else f"{task.id}: {task.title}"
        card = self.trello_helper.create_card(list_id, title, jira.build_card_description(task))
        self.label_bug(task, card.id)
        return ItemResult(title, Outcome.CREATED)

    def label_bug(self, task, card_id):
        if not task.is_bug:
            return
        try:
            self.trello_helper.add_label(card_id, "red")
            logging.info("    Added bug label")
        except TrelloSyncError as e:
            logging.warning(f"    Warning: failed to add bug label: {e}")
