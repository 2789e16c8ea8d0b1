import logging
import os
import re
import subprocess
from datetime import datetime

from trellosync.Exceptions import RemoteError
from trellosync.models import JiraTask

JIRA_BROWSE_URL = "https://alkiranet.atlassian.net/browse"

PR_PATTERNS = [
    r"- 📋 \[Related PR\]\(([^)]+)\)",
    r"- 📋 \[PR\]\(([^)]+)\)",
    r"- \[PR\]\(([^)]+)\)",
    r"- \[Related PR\]\(([^)]+)\)",
]
PR_URL_PATTERN = r"https://github\.com/[^\s)]+/pull/\d+"
PR_PLACEHOLDERS = {"", "#", "<!-- Add PR link when created -->"}

LOCAL_STATUS_BY_LIST = {
    ("sprint", "backlog", "to do", "todo"): "🎯 PLANNED",
    ("doing", "in progress"): "🔄 IN PROGRESS",
    ("in review", "code review", "review"): "👀 IN REVIEW",
    ("done", "completed"): "✅ COMPLETED",
}

JIRA_STATUS_BY_LIST = {
    ("sprint", "backlog", "to do", "todo"): "Open",
    ("doing", "in progress", "in review", "code review", "review"): "In Progress",
}

# Fallback transitions to look for when the generic status is rejected
STATE_CANDIDATES = {
    "open": ["need requirements", "started development", "development started",
             "fix in progress", "in progress", "start", "begin"],
    "in progress": ["fix in progress", "started development", "development started",
                    "in progress", "progress", "working"],
    "done": ["resolve issue", "close", "done", "complete", "finish", "resolved", "closed", "finished"],
}


def _search(pattern, text, flags=0):
    match = re.search(pattern, text, flags)
    return match.group(1).strip() if match else ""


def parse_status_file(task, content):
    task.status = _search(r"## Current Status:\s*(.+)", content)
    task.next_steps = _search(r"## Next Steps:(.*?)(?:## |$)", content, re.DOTALL)
    task.key_findings = _search(r"## Key Findings:(.*?)(?:## |$)", content, re.DOTALL)
    task.jira_status = _search(r"- \*\*JIRA Status\*\*:\s*(.+)", content)
    task.priority = _search(r"- \*\*Priority\*\*:\s*(.+)", content)
    task.issue_type = _search(r"- \*\*Issue Type\*\*:\s*(.+)", content)

    for pattern in PR_PATTERNS:
        link = _search(pattern, content)
        if link not in PR_PLACEHOLDERS:
            task.pr_link = link
            return task
    direct = re.search(PR_URL_PATTERN, content)
    if direct:
        task.pr_link = direct.group(0)
    return task


def parse_task(tasks_dir, task_id):
    task = JiraTask(id=task_id)
    status_file = os.path.join(tasks_dir, task_id, "STATUS.md")
    task_file = os.path.join(tasks_dir, task_id, f"{task_id}.md")

    if os.path.isfile(status_file):
        with open(status_file, encoding="utf-8") as f:
            parse_status_file(task, f.read())

    if os.path.isfile(task_file):
        with open(task_file, encoding="utf-8") as f:
            title = _search(r"# (.+)", f.read())
        if title:
            task.title = title
    return task


def parse_tasks(tasks_dir):
    """Each sub-directory of tasks_dir is one task, named by its JIRA id."""
    tasks = []
    for entry in sorted(os.listdir(tasks_dir)):
        if not os.path.isdir(os.path.join(tasks_dir, entry)):
            continue
        try:
            tasks.append(parse_task(tasks_dir, entry))
        except (OSError, UnicodeDecodeError) as e:
            logging.warning(f"  - Warning: failed to parse task {entry}: {e}")
    return tasks


def build_card_description(task, now=None):
    now = now or datetime.now()
    lines = [f"**JIRA Task ID**: {task.id}\n"]
    if task.status:
        lines.append(f"**Current Status**: {task.status}\n")
    if task.jira_status or task.priority or task.issue_type:
        lines.append("**JIRA Info**:")
        if task.jira_status:
            lines.append(f"- Status: {task.jira_status}")
        if task.priority:
            lines.append(f"- Priority: {task.priority}")
        if task.issue_type:
            lines.append(f"- Type: {task.issue_type}")
        lines.append("")
    if task.next_steps:
        lines.append(f"**Next Steps**:\n{task.next_steps}\n")
    if task.key_findings:
        lines.append(f"**Key Findings**:\n{task.key_findings}\n")
    lines.append("**Links**:")
    lines.append(f"- [JIRA Ticket]({JIRA_BROWSE_URL}/{task.id})")
    if task.pr_link:
        lines.append(f"- [Related PR]({task.pr_link})")
    lines.append(f"\n---\n*Last synced: {now:%Y-%m-%d %H:%M}*")
    return "\n".join(lines)


def map_list_to_local_status(list_name):
    key = list_name.lower()
    for names, status in LOCAL_STATUS_BY_LIST.items():
        if key in names:
            return status
    return "🔄 " + list_name.upper()


def map_list_to_jira_status(list_name):
    """Done lists map to nothing: closing an issue stays a manual step."""
    key = list_name.lower()
    for names, status in JIRA_STATUS_BY_LIST.items():
        if key in names:
            return status
    return ""


def update_local_status(tasks_dir, task_id, new_status):
    status_file = os.path.join(tasks_dir, task_id, "STATUS.md")
    with open(status_file, encoding="utf-8") as f:
        content = f.read()

    status_line = f"## Current Status: {new_status}"
    if re.search(r"## Current Status:\s*(.+)", content):
        content = re.sub(r"## Current Status:\s*(.+)", lambda _: status_line, content)
    else:
        content = re.sub(r"(# [^\n]+\n)", lambda m: f"{m.group(1)}\n{status_line}\n", content, count=1)

    with open(status_file, 'w', encoding="utf-8") as f:
        f.write(content)


def parse_available_states(output):
    """Reads the quoted states from the CLI's "Available states for issue X: 'A', 'B'" line."""
    for line in output.splitlines():
        if "Available states" in line:
            _, _, states = line.partition(":")
            return re.findall(r"'([^']*)'", states)
    return []


def find_best_state(available_states, target_status):
    for candidate in STATE_CANDIDATES.get(target_status.lower(), []):
        for state in available_states:
            if candidate in state.lower():
                return state
    return ""


class JiraHelper:
    def __init__(self, command="jira", runner=None):
        self.command = command
        self.runner = runner or subprocess.run

    def move_issue(self, issue_id, target_state):
        """Returns (success, available_states). available_states is only filled on failure."""
        try:
            result = self.runner([self.command, "issue", "move", issue_id, target_state],
                                 capture_output=True, text=True, env=os.environ.copy())
        except OSError as e:
            raise RemoteError("JIRA", f"failed to run {self.command}: {e}") from e
        if result.returncode == 0:
            return True, []
        return False, parse_available_states((result.stdout or "") + (result.stderr or ""))

    def update_status(self, issue_id, target_status):
        """Moves the issue, retrying once with the closest available state. Returns the state used or ''."""
        if not target_status:
            return ""
        ok, available = self.move_issue(issue_id, target_status)
        if ok:
            return target_status

        best = find_best_state(available, target_status)
        if not best:
            logging.info(f"    No suitable JIRA transition found for '{target_status}'")
            if available:
                logging.info(f"    Available states: {available}")
            return ""

        logging.info(f"    Updating JIRA {issue_id}: '{target_status}' -> '{best}'")
        ok, _ = self.move_issue(issue_id, best)
        if not ok:
            raise RemoteError("JIRA", f"failed to move {issue_id} to '{best}'")
        return best
