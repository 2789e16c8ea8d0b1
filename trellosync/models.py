"""
Data models shared by the Trello, Canvas and Moodle helpers.

Trello objects are rebuilt from the REST payloads on every run; only
boards and lists are persisted (see helpers/CacheHelper.py).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

TRELLO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC3339 timestamp (Canvas/Trello style) into an aware datetime, or None."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_trello_date(value: datetime) -> str:
    """Format a datetime the way Trello expects `due` values."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TRELLO_DATE_FORMAT)


@dataclass(frozen=True)
class Board:
    id: str
    name: str
    url: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "Board":
        return cls(id=data["id"], name=data.get("name", ""), url=data.get("url", ""))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "url": self.url}


@dataclass(frozen=True)
class TrelloList:
    id: str
    name: str
    board_id: str

    @classmethod
    def from_api_response(cls, data: dict) -> "TrelloList":
        return cls(id=data["id"], name=data.get("name", ""), board_id=data.get("idBoard", ""))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "idBoard": self.board_id}


@dataclass
class Card:
    id: str
    name: str
    description: str = ""
    url: str = ""
    closed: bool = False
    list_id: str = ""
    due: Optional[datetime] = None
    due_complete: bool = False

    @classmethod
    def from_api_response(cls, data: dict) -> "Card":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("desc") or "",
            url=data.get("url") or data.get("shortUrl") or "",
            closed=bool(data.get("closed", False)),
            list_id=data.get("idList", ""),
            due=parse_iso_datetime(data.get("due")),
            due_complete=bool(data.get("dueComplete", False)),
        )


@dataclass
class CacheSnapshot:
    boards: List[Board] = field(default_factory=list)
    lists: List[TrelloList] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "CacheSnapshot":
        return cls(
            boards=[Board.from_api_response(b) for b in data["boards"]],
            lists=[TrelloList.from_api_response(li) for li in data["lists"]],
        )

    def to_dict(self) -> dict:
        return {
            "boards": [b.to_dict() for b in self.boards],
            "lists": [li.to_dict() for li in self.lists],
        }

    def lists_for_board(self, board_id: str) -> List[TrelloList]:
        return [li for li in self.lists if li.board_id == board_id]


@dataclass(frozen=True)
class Grade:
    score: float
    max_score: float

    @property
    def percentage(self) -> Optional[float]:
        if self.max_score > 0:
            return self.score / self.max_score * 100
        return None

    @property
    def graded(self) -> bool:
        return self.percentage is not None


@dataclass
class RemoteAssignment:
    """An assignment or quiz from Canvas or Moodle, normalized for reconciliation."""
    source: str
    source_id: int
    title: str
    description: str
    course_id: int
    due_raw: str = ""
    due: Optional[datetime] = None
    url: str = ""
    kind: str = "assignment"
    points_possible: Optional[float] = None

    @property
    def kind_label(self) -> str:
        return "Quiz" if self.kind == "quiz" else "Assignment"

    @classmethod
    def from_canvas(cls, data: dict) -> "RemoteAssignment":
        due_raw = data.get("due_at") or ""
        try:
            due = parse_iso_datetime(due_raw)
        except ValueError:
            due = None
        return cls(
            source="Canvas",
            source_id=int(data["id"]),
            title=data.get("name", ""),
            description=data.get("description") or "",
            course_id=int(data.get("course_id") or 0),
            due_raw=due_raw,
            due=due,
            url=data.get("html_url", ""),
            points_possible=data.get("points_possible"),
        )

    @classmethod
    def from_moodle(cls, data: dict, kind: str = "assignment") -> "RemoteAssignment":
        due_unix = int(data.get("duedate") or data.get("timeclose") or 0)
        due = datetime.fromtimestamp(due_unix, tz=timezone.utc) if due_unix > 0 else None
        return cls(
            source="Moodle",
            source_id=int(data["id"]),
            title=data.get("name", ""),
            description=data.get("intro") or "",
            course_id=int(data.get("course") or 0),
            # Moodle reports epochs; the metadata block shows them as local RFC3339
            due_raw=due.astimezone().isoformat(timespec="seconds") if due else "",
            due=due,
            url=data.get("url", ""),
            kind=kind,
        )

    def to_moodle_dict(self) -> dict:
        """Inverse of from_moodle, used when exporting test data."""
        return {
            "id": self.source_id,
            "name": self.title,
            "intro": self.description,
            "course": self.course_id,
            "duedate": int(self.due.timestamp()) if self.due else 0,
            "url": self.url,
            "type": self.kind,
        }


@dataclass
class JiraTask:
    id: str
    title: str = "JIRA Task"
    status: str = ""
    next_steps: str = ""
    key_findings: str = ""
    jira_status: str = ""
    priority: str = ""
    issue_type: str = ""
    pr_link: str = ""

    @property
    def is_bug(self) -> bool:
        return self.issue_type.lower() == "bug" or self.priority.lower() == "bug"
