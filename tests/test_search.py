"""Tests for board/list name matching."""

import pytest

from trellosync.Exceptions import NotFoundError
from trellosync.helpers.SearchHelper import find_board, find_list, normalize_name
from trellosync.models import Board, TrelloList


class TestNormalizeName:
    @pytest.mark.parametrize("name", ["  Family Tasks  ", "FAMILY TASKS", "Family Tasks"])
    def test_case_and_whitespace_insensitive(self, name):
        assert normalize_name(name) == "family tasks"

    @pytest.mark.parametrize("name", ["", "  ", " MiXeD Case\t", "already normal"])
    def test_idempotent(self, name):
        assert normalize_name(normalize_name(name)) == normalize_name(name)


class TestFindBoard:
    def test_exact_match_beats_earlier_substring_match(self):
        boards = [Board("1", "Mac's Board"), Board("2", "Mac")]
        assert find_board(boards, "Mac").id == "2"

    def test_exact_match_beats_later_substring_match(self):
        boards = [Board("2", "Mac"), Board("1", "Mac's Board")]
        assert find_board(boards, "Mac").id == "2"

    def test_substring_match_first_in_input_order(self):
        boards = [Board("1", "Zeta School"), Board("2", "Alpha School")]
        assert find_board(boards, "school").id == "1"

    def test_normalizes_query(self):
        boards = [Board("1", "Family Tasks")]
        assert find_board(boards, "  FAMILY TASKS ").id == "1"

    def test_not_found(self):
        with pytest.raises(NotFoundError, match="board 'Work' not found"):
            find_board([Board("1", "Home")], "Work")


class TestFindList:
    @pytest.fixture
    def lists(self):
        return [
            TrelloList("a", "Weekly", "b2"),
            TrelloList("b", "Weekly Review", "b1"),
            TrelloList("c", "weekly", "b1"),
        ]

    def test_filters_by_board_before_matching(self, lists):
        assert find_list(lists, "b1", "Weekly").id == "c"

    def test_substring_within_board(self, lists):
        assert find_list(lists, "b1", "review").id == "b"

    def test_list_from_other_board_is_not_found(self, lists):
        with pytest.raises(NotFoundError):
            find_list([TrelloList("a", "Daily", "b2")], "b1", "Daily")
