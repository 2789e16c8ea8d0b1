"""Shared fakes for the Trello, Canvas and HTTP collaborators."""

import itertools
from types import SimpleNamespace

import pytest

from trellosync.Exceptions import NotFoundError, RemoteError
from trellosync.helpers.SearchHelper import find_board, find_list
from trellosync.helpers.TrelloHelper import order_by_due_date
from trellosync.models import Board, CacheSnapshot, Card, TrelloList, parse_iso_datetime


class FakeTrello:
    """In-memory board service with the same surface as TrelloHelper."""

    def __init__(self, boards=None, lists=None, cards=None):
        self.boards = boards or [Board("b1", "Makai School")]
        self.lists = lists or [TrelloList("l1", "Daily", "b1"), TrelloList("l2", "Weekly", "b1")]
        self.cards = cards or []
        self.calls = []
        self.fail_titles = set()
        self._ids = itertools.count(1)

    def _board_of(self, list_id):
        return next(li.board_id for li in self.lists if li.id == list_id)

    def load_cache(self):
        return CacheSnapshot(boards=list(self.boards), lists=list(self.lists))

    def find_board(self, board_name):
        return find_board(self.boards, board_name)

    def find_list_id(self, board_name, list_name):
        return find_list(self.lists, self.find_board(board_name).id, list_name).id

    def get_lists(self, board_id):
        return [li for li in self.lists if li.board_id == board_id]

    def get_board_cards(self, board_id):
        return [c for c in self.cards if self._board_of(c.list_id) == board_id]

    def get_all_board_cards(self, board_name):
        return self.get_board_cards(self.find_board(board_name).id)

    def get_cards_in_list(self, list_id):
        return [c for c in self.cards if c.list_id == list_id]

    def card(self, card_id):
        for c in self.cards:
            if c.id == card_id:
                return c
        raise NotFoundError(card_id)

    def create_card(self, list_id, name, desc="", due=None):
        self.calls.append(("create", name))
        if name in self.fail_titles:
            raise RemoteError("Trello", "POST /cards failed with status 500", 500)
        card = Card(id=f"c{next(self._ids)}", name=name, description=desc, list_id=list_id,
                    due=parse_iso_datetime(due))
        self.cards.append(card)
        return card

    def update_card_due(self, card_id, due, due_complete=False):
        self.calls.append(("due", card_id))
        card = self.card(card_id)
        card.due = parse_iso_datetime(due)
        card.due_complete = due_complete

    def update_card_title(self, card_id, title):
        self.calls.append(("title", card_id))
        self.card(card_id).name = title

    def update_card_description(self, card_id, description):
        self.calls.append(("description", card_id))
        self.card(card_id).description = description

    def delete_all_cards_in_list(self, list_id):
        removed = self.get_cards_in_list(list_id)
        self.cards = [c for c in self.cards if c.list_id != list_id]
        self.calls.append(("clear", list_id))
        return len(removed)

    def add_comment(self, card_id, text):
        self.calls.append(("comment", card_id, text))

    def add_label(self, card_id, color):
        self.calls.append(("label", card_id, color))

    def sort_cards_by_due_date(self, list_id):
        self.calls.append(("sort", list_id))
        ordered = order_by_due_date(self.get_cards_in_list(list_id))
        others = [c for c in self.cards if c.list_id != list_id]
        self.cards = ordered + others
        return len(ordered)

    def count(self, kind):
        return sum(1 for call in self.calls if call[0] == kind)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self.payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Records requests and answers them from a list of queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method, url, params=None, **kwargs):
        self.requests.append(SimpleNamespace(method=method, url=url, params=params or {}, kwargs=kwargs))
        return self._next()

    def get(self, url, params=None, **kwargs):
        return self.request("GET", url, params=params, **kwargs)


@pytest.fixture
def fake_trello():
    return FakeTrello()
