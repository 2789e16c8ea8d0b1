import argparse
import logging
import os
import sys

import appdirs
from termcolor import colored

APP_NAME = "TrelloSync"
APP_AUTHOR = "Mac Farnsworth"


def setup():
    os_save_path = appdirs.user_data_dir(APP_NAME, APP_AUTHOR)
    os.makedirs(os_save_path, exist_ok=True)
    os_config_path = appdirs.user_config_dir(APP_NAME, APP_AUTHOR)
    os.makedirs(os_config_path, exist_ok=True)
    config_path = os.path.join(os_config_path, "config.json")
    os_cache_path = appdirs.user_cache_dir(APP_NAME, APP_AUTHOR)
    os.makedirs(os_cache_path, exist_ok=True)
    os_log_path = appdirs.user_log_dir(APP_NAME, APP_AUTHOR)
    os.makedirs(os_log_path, exist_ok=True)
    log_path = os.path.join(os_log_path, "trello-sync.log")
    return os_save_path, config_path, os_cache_path, log_path


ACTION_FLAGS = ["refresh", "cache", "daily_reset", "create_weekly", "test_canvas", "sync_canvas",
                "sync_moodle", "sync_jira", "export_moodle", "sundown"]


def build_parser():
    parser = argparse.ArgumentParser(description='Sync Canvas, Moodle and JIRA work into Trello')
    parser.add_argument('--refresh', action='store_true', help='Refresh the board/list cache from Trello')
    parser.add_argument('--cache', action='store_true', help='Show cached boards and lists')
    parser.add_argument('--board', default="", help='Board name to get cards from')
    parser.add_argument('--list', default="", help='List name to get cards from')
    parser.add_argument('--daily-reset', action='store_true', help='Reset daily cards with new due dates')
    parser.add_argument('--create-weekly', action='store_true', help='Create weekly cards for next week')
    parser.add_argument('--test-canvas', action='store_true', help='Test Canvas API connection')
    parser.add_argument('--sync-canvas', action='store_true', help='Sync Canvas assignments to Trello')
    parser.add_argument('--sync-moodle', action='store_true', help='Sync Moodle assignments and quizzes to Trello')
    parser.add_argument('--sync-jira', metavar='DIR', default="", help='Sync local JIRA task folders to Trello')
    parser.add_argument('--export-moodle', metavar='FILE', default="",
                        help='Export upcoming Moodle assignments to a JSON file')
    parser.add_argument('--moodle-test-file', metavar='FILE', default="",
                        help='Sync Moodle assignments from an exported JSON file')
    parser.add_argument('--to-date', default="", help='Sync Moodle work due up to this date (YYYY-MM-DD)')
    parser.add_argument('--dry-run', action='store_true', help='Show what a sync would change without writing')
    parser.add_argument('--sundown', action='store_true', help='Post the daily sundown notification card')
    parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation prompts')
    return parser


def parse_args(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    selected = [flag for flag in ACTION_FLAGS if getattr(args, flag)]
    if args.board or args.list:
        if not (args.board and args.list):
            parser.error("--board and --list must be used together")
        selected.append("board/list")
    if len(selected) > 1:
        parser.error(f"Only one operation may be selected per run (got: {', '.join(selected)})")
    return args


def p_error(*args, **kwargs):
    logging.error(colored(*args, color="red", **kwargs))


def p_success(*args, **kwargs):
    logging.info(colored(*args, color="green", **kwargs))


def p_warn(*args, **kwargs):
    logging.warning(colored(*args, color="yellow", attrs=["bold", "reverse"], **kwargs))


def p_info(*args, **kwargs):
    logging.info(colored(*args, color="yellow", **kwargs))


def is_interactive():
    return sys.stdin is not None and sys.stdin.isatty()
