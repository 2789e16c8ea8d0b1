import logging
import os
import sys
from datetime import datetime, timedelta

from trellosync.BoardChores import create_sundown_notification, create_weekly_cards, reset_daily_tasks
from trellosync.CanvasToTrello import CanvasToTrello
from trellosync.Exceptions import ConfigError, TrelloSyncError
from trellosync.JiraToTrello import JiraToTrello
from trellosync.MoodleToTrello import MoodleToTrello
from trellosync.Utils import is_interactive, p_error, p_success, parse_args, setup
from trellosync.helpers.CacheHelper import (BOARD_CACHE_FILE, SUNSET_CACHE_FILE, BoardCache, JsonFileStore,
                                            SunsetCacheStore)
from trellosync.helpers.CanvasHelper import CanvasHelper
from trellosync.helpers.ConfigHelper import ConfigHelper
from trellosync.helpers.JiraHelper import JiraHelper
from trellosync.helpers.MoodleHelper import MoodleHelper
from trellosync.helpers.SunsetHelper import SunsetHelper
from trellosync.helpers.TrelloHelper import TrelloHelper


def setup_logging(log_path):
    log_handlers = [logging.FileHandler(log_path, mode='w'), logging.StreamHandler()]
    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=log_handlers)


def parse_to_date(value):
    if not value:
        return datetime.now().astimezone() + timedelta(days=14)
    try:
        return datetime.strptime(value, "%Y-%m-%d").astimezone()
    except ValueError as e:
        raise ConfigError("to_date", f"Invalid --to-date '{value}', expected YYYY-MM-DD") from e


def show_cache(trello_helper):
    cache = trello_helper.load_cache()
    logging.info("Cached boards and lists:")
    for board in cache.boards:
        logging.info(f"- {board.name} (ID: {board.id})")
        for trello_list in cache.lists_for_board(board.id):
            logging.info(f"  └─ {trello_list.name} (ID: {trello_list.id})")
        logging.info("")


def show_list_cards(trello_helper, board_name, list_name):
    list_id = trello_helper.find_list_id(board_name, list_name)
    logging.info(f"Cards in '{board_name}' -> '{list_name}':")
    for card in trello_helper.get_cards_in_list(list_id):
        logging.info(f"- {card.name}")
        if card.description:
            logging.info(f"  {card.description}")
        logging.info(f"  {card.url}")
        logging.info("")


def show_live_boards(trello_helper):
    boards = trello_helper.get_boards()
    logging.info(f"Found {len(boards)} boards:")
    for board in boards:
        logging.info(f"- {board.name} (ID: {board.id})")
        try:
            lists = trello_helper.get_lists(board.id)
        except TrelloSyncError as e:
            logging.info(f"  Error getting lists: {e}")
            continue
        for trello_list in lists:
            logging.info(f"  └─ {trello_list.name} (ID: {trello_list.id})")
        logging.info("")


def school_board(config, trello_helper):
    try:
        boards = trello_helper.load_cache().boards
    except TrelloSyncError:
        boards = []
    return config.select_board("school_board", boards, interactive=is_interactive())


def run(args, config, cache_dir):
    api_key, api_token = config.require("trello_api_key", "trello_api_token")
    board_cache = BoardCache(JsonFileStore(os.path.join(cache_dir, BOARD_CACHE_FILE)))
    trello_helper = TrelloHelper(api_key, api_token, board_cache)

    if args.refresh:
        logging.info("Refreshing cache...")
        trello_helper.refresh_cache()
        p_success("Cache updated successfully!")

    elif args.cache:
        show_cache(trello_helper)

    elif args.board and args.list:
        show_list_cards(trello_helper, args.board, args.list)

    elif args.daily_reset:
        reset_daily_tasks(trello_helper, school_board(config, trello_helper), config.get("daily_list"))

    elif args.create_weekly:
        create_weekly_cards(trello_helper, school_board(config, trello_helper), config.get("weekly_list"),
                            config.get("subjects_path"))

    elif args.test_canvas or args.sync_canvas:
        token, base_url = config.require("canvas_api_token", "canvas_base_url")
        canvas_helper = CanvasHelper(token, base_url)
        if args.test_canvas:
            logging.info("Testing Canvas API connection...")
            canvas_helper.test_connection()
        else:
            CanvasToTrello(trello_helper, canvas_helper, school_board(config, trello_helper),
                           config.get("weekly_list")).run()

    elif args.sync_moodle or args.moodle_test_file or args.export_moodle:
        to_date = parse_to_date(args.to_date)
        moodle_helper = None
        if not args.moodle_test_file:
            base_url, token = config.require("moodle_base_url", "moodle_token")
            moodle_helper = MoodleHelper(base_url, token)
        sync = MoodleToTrello(trello_helper, moodle_helper, school_board(config, trello_helper),
                              config.get("weekly_list"), dry_run=args.dry_run)
        if args.export_moodle:
            sync.export(args.export_moodle, to_date)
        elif args.moodle_test_file:
            sync.run_from_file(args.moodle_test_file)
        else:
            sync.run(to_date)

    elif args.sync_jira:
        JiraToTrello(trello_helper, JiraHelper(), config.get("jira_board")).run(args.sync_jira)

    elif args.sundown:
        sunset_helper = SunsetHelper(SunsetCacheStore(JsonFileStore(os.path.join(cache_dir, SUNSET_CACHE_FILE))))
        create_sundown_notification(trello_helper, sunset_helper, config.get("sundown_board"),
                                    config.get("sundown_list"), config.get("sundown_mention"),
                                    float(config.get("sunset_latitude")), float(config.get("sunset_longitude")))

    else:
        show_live_boards(trello_helper)


def main(argv=None):
    os_save_path, config_path, cache_dir, log_path = setup()
    setup_logging(log_path)
    logging.info(f"Logs saved to: {log_path}")
    logging.info("")

    args = parse_args(argv)
    if args.yes:
        logging.info("Skipping confirmation prompts")

    try:
        config = ConfigHelper(config_path, skip_confirmation_prompts=args.yes)
        run(args, config, cache_dir)
    except ConfigError as e:
        p_error(str(e))
        sys.exit(1)
    except TrelloSyncError as e:
        p_error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
