"""Recurring board upkeep: daily resets, next week's subject cards and the sundown card."""

import logging
from datetime import datetime, time, timedelta

from trellosync.helpers.SubjectsHelper import format_week_range, get_current_quarter, load_subjects_config
from trellosync.models import format_trello_date
from trellosync.Utils import p_success


def reset_daily_tasks(trello_helper, board_name, list_name, now=None):
    """Every card in the daily list becomes due at the end of tomorrow and is marked not done."""
    now = now or datetime.now().astimezone()
    list_id = trello_helper.find_list_id(board_name, list_name)
    cards = trello_helper.get_cards_in_list(list_id)

    end_of_tomorrow = datetime.combine(now.date() + timedelta(days=1), time(23, 59, 59), tzinfo=now.tzinfo)
    due = format_trello_date(end_of_tomorrow)
    logging.info(f"# Resetting {len(cards)} daily tasks with due date: {end_of_tomorrow:%b %d, %Y %I:%M %p}")

    for card in cards:
        logging.info(f"  - Updating: {card.name}")
        trello_helper.update_card_due(card.id, due, False)

    p_success(f"Successfully reset {len(cards)} daily tasks!")
    return len(cards)


def create_weekly_cards(trello_helper, board_name, list_name, subjects_path, today=None):
    """Creates one card per subject for the week after the current one, due at 6 PM on its last day."""
    today = today or datetime.now().date()
    quarter = get_current_quarter(load_subjects_config(subjects_path), today)
    next_week = quarter.get_next_week(quarter.get_current_week(today))
    list_id = trello_helper.find_list_id(board_name, list_name)

    due_time = datetime.combine(next_week.end_date, time(18, 0)).astimezone()
    due = format_trello_date(due_time)
    week_range = format_week_range(next_week)

    logging.info(f"# Creating cards for Week {next_week.number}: {week_range}")
    logging.info(f"  - Due date: {due_time:%B %d, %Y at %I:%M %p}")

    names = []
    for subject in quarter.subjects:
        name = f"{subject} Week {next_week.number}: {week_range}"
        logging.info(f"  - Creating: {name}")
        trello_helper.create_card(list_id, name, "", due)
        names.append(name)

    p_success(f"Successfully created {len(names)} weekly cards!")
    return names


def create_sundown_notification(trello_helper, sunset_helper, board_name, list_name, mention, lat, lng,
                                now=None):
    """Replaces the contents of the sundown list with today's card and a comment pinging `mention`."""
    now = now or datetime.now()
    list_id = trello_helper.find_list_id(board_name, list_name)
    trello_helper.delete_all_cards_in_list(list_id)

    sundown = sunset_helper.get_today_sunset(lat, lng)
    day = f"{now:%A, %B} {now.day}, {now.year}"
    card = trello_helper.create_card(list_id, f"Sundown Notification - {day}")
    trello_helper.add_comment(card.id, f"@{mention} Sundown today ({day}) is at {sundown} 🌅")

    p_success(f"Created sundown notification card for {now:%B} {now.day}, {now.year}")
    logging.info(f"   Sundown time: {sundown}")
    logging.info(f"   Notified: @{mention}")
    return card
