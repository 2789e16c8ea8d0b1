"""
Card reconciliation for assignments mirrored from Canvas and Moodle.

Each remote assignment maps to at most one Trello card. The join key is a
marker line ("Canvas Assignment ID: 12345") kept inside a metadata block at
the end of the card description, so repeated runs find the same card.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional

from trellosync.Exceptions import TrelloSyncError
from trellosync.models import Card, Grade, RemoteAssignment, format_trello_date

METADATA_SEPARATOR = "\n\n---\n"
REDO_PREFIX = "REDO - "
REDO_THRESHOLD = 90
REDO_DAYS = 7


def marker(system, kind, source_id):
    return f"{system} {kind} ID: {source_id}"


def extract_marker(text, system, kind):
    match = re.search(rf"{re.escape(system)} {re.escape(kind)} ID: (\d+)", text or "")
    return int(match.group(1)) if match else None


def find_by_marker(cards, system, kind, source_id) -> Optional[Card]:
    """First card whose description carries the marker for source_id. Duplicates are not detected."""
    for card in cards:
        if extract_marker(card.description, system, kind) == int(source_id):
            return card
    return None


def strip_metadata(description):
    return (description or "").split(METADATA_SEPARATOR)[0]


def needs_redo(grade: Optional[Grade]):
    return grade is not None and grade.graded and grade.percentage < REDO_THRESHOLD


def apply_redo_prefix(title, redo):
    if redo and not title.startswith(REDO_PREFIX):
        return REDO_PREFIX + title
    if not redo and title.startswith(REDO_PREFIX):
        return title[len(REDO_PREFIX):]
    return title


def format_grade(grade: Optional[Grade]):
    if grade is None or not grade.graded:
        return "Not graded"
    text = f"{grade.percentage:.1f}%"
    if grade.percentage < REDO_THRESHOLD:
        text += " (REDO NEEDED)"
    return text


def format_metadata(assignment: RemoteAssignment, course_name, grade: Optional[Grade]):
    return (f"{METADATA_SEPARATOR}"
            f"{marker(assignment.source, assignment.kind_label, assignment.source_id)}\n"
            f"Course: {course_name}\n"
            f"Original Due Date: {assignment.due_raw}\n"
            f"Grade: {format_grade(grade)}\n"
            f"{assignment.source} URL: {assignment.url}")


def compute_due(assignment: RemoteAssignment, redo, now):
    """A redo gets a fresh week from now; otherwise the source due date (or none)."""
    if redo:
        return format_trello_date(now + timedelta(days=REDO_DAYS))
    if assignment.due is not None:
        return format_trello_date(assignment.due)
    return None


class Action(Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class Outcome(Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class CardPlan:
    action: Action
    title: str
    description: str
    due: Optional[str]
    card: Optional[Card] = None
    reason: str = ""


@dataclass
class ItemResult:
    title: str
    outcome: Outcome
    reason: str = ""
    changes: List[str] = field(default_factory=list)


@dataclass
class SyncReport:
    source: str
    results: List[ItemResult] = field(default_factory=list)
    dry_run: bool = False

    def add(self, result: ItemResult):
        self.results.append(result)
        return result

    def count(self, outcome: Outcome):
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def changed(self):
        return self.count(Outcome.CREATED) + self.count(Outcome.UPDATED) > 0

    def log_summary(self):
        logging.info("")
        logging.info(f"# {self.source} Summary{' (dry run)' if self.dry_run else ''}:")
        logging.info(f"  * Created: {self.count(Outcome.CREATED)}")
        logging.info(f"  * Updated: {self.count(Outcome.UPDATED)}")
        logging.info(f"  * Up to Date: {self.count(Outcome.UNCHANGED)}")
        logging.info(f"  * Skipped: {self.count(Outcome.SKIPPED)}")
        logging.info(f"  * Failed: {self.count(Outcome.FAILED)}")
        for result in self.results:
            if result.outcome is Outcome.FAILED:
                logging.info(f"    - {result.title}: {result.reason}")


def reconcile(assignment: RemoteAssignment, grade: Optional[Grade], existing_cards, course_name, now,
              skip_passing=False) -> CardPlan:
    """
    Decides what to do with one remote assignment and computes the card fields.
    Nothing is written here; see apply_plan.
    """
    title = f"{course_name} - {assignment.title}"

    if skip_passing and grade is not None and grade.graded and grade.percentage >= REDO_THRESHOLD:
        return CardPlan(Action.SKIP, title, "", None,
                        reason=f"passing grade ({grade.percentage:.1f}%)")

    redo = needs_redo(grade)
    title = apply_redo_prefix(title, redo)
    description = strip_metadata(assignment.description) + format_metadata(assignment, course_name, grade)
    due = compute_due(assignment, redo, now)

    existing = find_by_marker(existing_cards, assignment.source, assignment.kind_label, assignment.source_id)
    if existing is None:
        return CardPlan(Action.CREATE, title, description, due)
    return CardPlan(Action.UPDATE, title, description, due, card=existing)


def apply_plan(trello, plan: CardPlan, default_list_id, dry_run=False) -> ItemResult:
    """Writes the plan to Trello. Remote errors become a FAILED result instead of propagating."""
    if plan.action is Action.SKIP:
        logging.info(f"  - Skipping: {plan.title} ({plan.reason})")
        return ItemResult(plan.title, Outcome.SKIPPED, plan.reason)

    if plan.action is Action.CREATE:
        if dry_run:
            logging.info(f"  [DRY RUN] Would create card: {plan.title} (due {plan.due or 'none'})")
            return ItemResult(plan.title, Outcome.CREATED)
        logging.info(f"  - Creating new card: {plan.title}")
        try:
            trello.create_card(default_list_id, plan.title, plan.description, plan.due)
        except TrelloSyncError as e:
            logging.warning(f"    Warning: failed to create card {plan.title}: {e}")
            return ItemResult(plan.title, Outcome.FAILED, str(e))
        return ItemResult(plan.title, Outcome.CREATED)

    card = plan.card
    changes = []
    if card.name != plan.title:
        changes.append("title")
    if card.description != plan.description:
        changes.append("description")
    if (format_trello_date(card.due) if card.due else None) != plan.due:
        changes.append("due date")

    if dry_run:
        logging.info(f"  [DRY RUN] Would update card: {plan.title} (due {plan.due or 'none'})")
        return ItemResult(plan.title, Outcome.UPDATED if changes else Outcome.UNCHANGED, changes=changes)

    logging.info(f"  - Updating existing card: {plan.title}")
    try:
        # The due date is always rewritten, which also clears dueComplete
        trello.update_card_due(card.id, plan.due, False)
        if "title" in changes:
            trello.update_card_title(card.id, plan.title)
        if "description" in changes:
            trello.update_card_description(card.id, plan.description)
    except TrelloSyncError as e:
        logging.warning(f"    Warning: failed to update card {plan.title}: {e}")
        return ItemResult(plan.title, Outcome.FAILED, str(e), changes)

    return ItemResult(plan.title, Outcome.UPDATED if changes else Outcome.UNCHANGED, changes=changes)
