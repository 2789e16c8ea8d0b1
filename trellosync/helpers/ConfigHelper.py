import json
import logging
import os
from datetime import datetime

from dotenv import load_dotenv
from pick import pick

from trellosync.Exceptions import ConfigError
from trellosync.Utils import p_info, p_warn

DEFAULTS = {
    "canvas_base_url": "https://canvas.instructure.com",
    "school_board": "Makai School",
    "daily_list": "Daily",
    "weekly_list": "Weekly",
    "jira_board": "Mac",
    "sundown_board": "Makai School",
    "sundown_list": "Sundown Notification (DO NOT ALTER)",
    "sundown_mention": "nalani_farnsworth",
    "sunset_latitude": 40.2969,
    "sunset_longitude": -111.6946,
    "subjects_path": "subjects.json",
}

# Settings that may come from the environment (or a .env file), by upper-cased key
ENV_KEYS = ["trello_api_key", "trello_api_token", "canvas_api_token", "canvas_base_url",
            "moodle_base_url", "moodle_token", "school_board", "jira_board", "sundown_board",
            "sundown_mention", "sunset_latitude", "sunset_longitude", "subjects_path"]

FLOAT_KEYS = {"sunset_latitude", "sunset_longitude"}


class ConfigHelper:

    def __init__(self, config_path="config.json", skip_confirmation_prompts=False, environ=None, dotenv_path=None):
        self.config_path = config_path
        self.skip_confirmation_prompts = skip_confirmation_prompts
        p_info("# ConfigHelper: Initialized")

        if environ is None:
            if not load_dotenv(dotenv_path):
                logging.info("  - No .env file found, using environment variables")
            environ = os.environ
        self.environ = environ
        self.config = self.load_config()

    def get(self, key):
        if key in self.config:
            return self.config[key]
        env_value = self.environ.get(key.upper()) if key in ENV_KEYS else None
        if env_value:
            return float(env_value) if key in FLOAT_KEYS else env_value
        return DEFAULTS.get(key)

    def set(self, key, value):
        self.config[key] = value
        self.save_config()

    def contains(self, key):
        return self.get(key) not in (None, "")

    def require(self, *keys):
        missing = [key for key in keys if not self.contains(key)]
        if missing:
            names = " and ".join(key.upper() for key in missing)
            raise ConfigError(missing[0], f"Please set {names} in .env file, environment variables "
                                          f"or {self.config_path}")
        return [self.get(key) for key in keys]

    def load_config(self):
        logging.info("  - Loading configuration file...")
        datetime_str = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        logging.info(f"  - Reading configuration... {datetime_str}")
        logging.info(f"  -  Config Path: {self.config_path}")

        config = {}
        try:
            with open(self.config_path) as config_file:
                config = json.load(config_file)
        except FileNotFoundError:
            logging.info("  - Config file not found, using defaults")
        except ValueError as e:
            raise ConfigError("config", f"Config file {self.config_path} is not valid JSON: {e}") from e
        return config

    def save_config(self):
        """
        Saves the configuration file to disk.
        """
        logging.info("  - Saving configuration file...")
        with open(self.config_path, 'w') as f:
            json.dump(self.config, f, indent=4)

    def select_board(self, key, boards, interactive=True):
        """
        Returns the configured board name for `key`. If it was never chosen and we are
        allowed to prompt, lets the user pick one of the cached boards and remembers it.
        """
        if key in self.config or self.skip_confirmation_prompts or not interactive or not boards:
            return self.get(key)

        title = f"Select the board to use for '{key}' (default: {DEFAULTS.get(key)}):"
        name, _ = pick([b.name for b in boards], title)
        p_warn(f"Using board '{name}' for {key}; saved to {self.config_path}")
        self.set(key, name)
        return name
