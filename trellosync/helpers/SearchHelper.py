from trellosync.Exceptions import NotFoundError


def normalize_name(name):
    return name.strip().lower()


def _match_by_name(candidates, query):
    """
    Exact (normalized) match first, then substring containment.
    The first candidate in input order wins in each pass.
    """
    query_norm = normalize_name(query)
    for candidate in candidates:
        if normalize_name(candidate.name) == query_norm:
            return candidate
    for candidate in candidates:
        if query_norm in normalize_name(candidate.name):
            return candidate
    return None


def find_board(boards, board_name):
    board = _match_by_name(boards, board_name)
    if board is None:
        raise NotFoundError(f"board '{board_name}' not found")
    return board


def find_list(lists, board_id, list_name):
    trello_list = _match_by_name([li for li in lists if li.board_id == board_id], list_name)
    if trello_list is None:
        raise NotFoundError(f"list '{list_name}' not found in board")
    return trello_list
