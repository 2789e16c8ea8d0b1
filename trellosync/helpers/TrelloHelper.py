import logging
import time

import requests

from trellosync.Exceptions import NotFoundError, RemoteError
from trellosync.helpers.SearchHelper import find_board, find_list
from trellosync.models import Board, Card, CacheSnapshot, TrelloList


def order_by_due_date(cards):
    """
    Returns the cards ordered by ascending due date. Cards without a due date
    go last and keep their relative order (sorted() is stable).
    """
    dated = sorted((c for c in cards if c.due is not None), key=lambda c: c.due)
    undated = [c for c in cards if c.due is None]
    return dated + undated


class TrelloHelper:
    BASE_URL = "https://api.trello.com/1"

    def __init__(self, api_key, api_token, board_cache=None, session=None, position_delay=0.1):
        self.api_key = api_key.strip()
        self.api_token = api_token.strip()
        self.board_cache = board_cache
        self.session = session or requests.Session()
        self.position_delay = position_delay
        self.sleep = time.sleep
        logging.info("# TrelloHelper: Initialized")

    def _request(self, method, endpoint, **params):
        params.update({"key": self.api_key, "token": self.api_token})
        url = f"{self.BASE_URL}{endpoint}"
        try:
            response = self.session.request(method, url, params=params)
        except requests.exceptions.RequestException as e:
            raise RemoteError("Trello", f"{method} {endpoint} failed: {e}") from e

        if response.status_code != 200:
            raise RemoteError("Trello", f"{method} {endpoint} failed with status {response.status_code}: "
                                        f"{response.text[:200]}", response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError("Trello", f"{method} {endpoint} returned invalid JSON") from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_boards(self):
        return [Board.from_api_response(b) for b in self._request("GET", "/members/me/boards")]

    def get_lists(self, board_id):
        return [TrelloList.from_api_response(li) for li in self._request("GET", f"/boards/{board_id}/lists")]

    def get_cards_in_list(self, list_id):
        return [Card.from_api_response(c) for c in self._request("GET", f"/lists/{list_id}/cards")]

    def get_board_cards(self, board_id):
        return [Card.from_api_response(c) for c in self._request("GET", f"/boards/{board_id}/cards")]

    # ------------------------------------------------------------------
    # Cache-backed lookups
    # ------------------------------------------------------------------

    def refresh_cache(self):
        """Re-fetches every board and its lists and overwrites the cache."""
        boards = self.get_boards()
        lists = []
        for board in boards:
            try:
                lists.extend(self.get_lists(board.id))
            except RemoteError as e:
                raise RemoteError("Trello", f"failed to get lists for board {board.name}: {e}") from e
        snapshot = CacheSnapshot(boards=boards, lists=lists)
        self.board_cache.save(snapshot)
        return snapshot

    def load_cache(self):
        return self.board_cache.load()

    def find_board(self, board_name):
        return find_board(self.load_cache().boards, board_name)

    def find_list_id(self, board_name, list_name):
        cache = self.load_cache()
        board = find_board(cache.boards, board_name)
        try:
            return find_list(cache.lists, board.id, list_name).id
        except NotFoundError as e:
            raise NotFoundError(f"{e} '{board.name}'") from e

    def get_all_board_cards(self, board_name):
        return self.get_board_cards(self.find_board(board_name).id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_card(self, list_id, name, desc="", due=None):
        params = {"idList": list_id, "name": name}
        if desc:
            params["desc"] = desc
        if due:
            params["due"] = due
        return Card.from_api_response(self._request("POST", "/cards", **params))

    def update_card_due(self, card_id, due, due_complete=False):
        # An empty due value clears the date on the card
        self._request("PUT", f"/cards/{card_id}", due=due or "", dueComplete=str(due_complete).lower())

    def update_card_description(self, card_id, description):
        self._request("PUT", f"/cards/{card_id}", desc=description)

    def update_card_title(self, card_id, title):
        self._request("PUT", f"/cards/{card_id}", name=title)

    def update_card_position(self, card_id, position):
        self._request("PUT", f"/cards/{card_id}", pos=position)

    def delete_card(self, card_id):
        self._request("DELETE", f"/cards/{card_id}")

    def delete_all_cards_in_list(self, list_id):
        cards = self.get_cards_in_list(list_id)
        logging.info(f"  - Deleting {len(cards)} cards from list...")
        for card in cards:
            logging.info(f"    - Deleting card: {card.name}")
            self.delete_card(card.id)
        return len(cards)

    def add_comment(self, card_id, text):
        self._request("POST", f"/cards/{card_id}/actions/comments", text=text)

    def add_label(self, card_id, color):
        """Adds the first board label with the given color to the card."""
        card = self._request("GET", f"/cards/{card_id}")
        labels = self._request("GET", f"/boards/{card['idBoard']}/labels")
        label_id = next((label["id"] for label in labels if label.get("color") == color), None)
        if label_id is None:
            raise NotFoundError(f"no {color} label found on board")
        self._request("POST", f"/cards/{card_id}/idLabels", value=label_id)

    def sort_cards_by_due_date(self, list_id):
        """
        Re-orders the cards of a list by due date.
        Each card is moved to the top, last-ranked first, so the earliest card ends up on top.
        """
        cards = self.get_cards_in_list(list_id)
        if len(cards) <= 1:
            return 0

        ordered = order_by_due_date(cards)
        for i in range(len(ordered) - 1, -1, -1):
            card = ordered[i]
            try:
                self.update_card_position(card.id, "top")
            except RemoteError as e:
                logging.warning(f"  - Warning: failed to update position for card {card.name}: {e}")
            if i > 0:
                self.sleep(self.position_delay)

        logging.info(f"  - Sorted {len(ordered)} cards by due date in list")
        return len(ordered)
