import json
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List

from trellosync.Exceptions import ConfigError, NotFoundError


@dataclass
class Week:
    number: int
    start_date: date
    end_date: date


@dataclass
class Quarter:
    name: str
    start_date: date
    end_date: date
    subjects: List[str] = field(default_factory=list)
    weeks: List[Week] = field(default_factory=list)

    def get_current_week(self, today):
        for week in self.weeks:
            if week.start_date <= today <= week.end_date:
                return week
        raise NotFoundError(f"no current week found for date {today.isoformat()}")

    def get_next_week(self, current_week):
        for i, week in enumerate(self.weeks):
            if week.number == current_week.number and i + 1 < len(self.weeks):
                return self.weeks[i + 1]
        raise NotFoundError(f"no next week found after week {current_week.number}")


def format_week_range(week):
    return f"{week.start_date:%B} {week.start_date.day}–{week.end_date.day}"


def _parse_date(value):
    return date.fromisoformat(value)


def load_subjects_config(path):
    """Reads the school calendar: {"quarters": [{name, startDate, endDate, subjects, weeks}]}."""
    try:
        with open(path) as f:
            document = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError("subjects", f"failed to read {path}: {e}") from e
    except ValueError as e:
        raise ConfigError("subjects", f"failed to parse {path}: {e}") from e

    quarters = []
    for q in document.get("quarters", []):
        try:
            weeks = [Week(int(w["number"]), _parse_date(w["startDate"]), _parse_date(w["endDate"]))
                     for w in q.get("weeks", [])]
            quarters.append(Quarter(q["name"], _parse_date(q["startDate"]), _parse_date(q["endDate"]),
                                    list(q.get("subjects", [])), weeks))
        except (KeyError, ValueError):
            # Quarters with unreadable dates are ignored
            continue
    return quarters


def get_current_quarter(quarters, today):
    for quarter in quarters:
        if quarter.start_date <= today < quarter.end_date + timedelta(days=1):
            return quarter
    raise NotFoundError(f"no current quarter found for date {today.isoformat()}")
