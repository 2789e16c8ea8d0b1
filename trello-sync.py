"""
Keeps the family Trello boards in step with school and work:
 - Mirrors upcoming Canvas and Moodle assignments as cards (REDO cards for grades under 90%)
 - Resets the daily list and creates next week's subject cards
 - Syncs local JIRA task folders with the work board
 - Posts the daily sundown notification card

Run with --help for the list of operations; exactly one runs per invocation.
"""

from trellosync.main import main

if __name__ == "__main__":
    # Main Execution
    main()
