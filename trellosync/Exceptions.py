"""Error types raised by the sync helpers."""


class TrelloSyncError(Exception):
    """Base class for all errors raised by trellosync."""


class ConfigError(TrelloSyncError):
    """Raised when a required setting (API key, token, base URL, date flag) is missing or invalid."""

    def __init__(self, key, message=None):
        self.key = key
        super().__init__(message or f"Missing required setting: {key}")


class NotFoundError(TrelloSyncError, LookupError):
    """Raised when a board, list or card cannot be resolved by name."""


class RemoteError(TrelloSyncError):
    """Raised when a remote API call fails or returns something we cannot parse."""

    def __init__(self, service, message, status_code=None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class CacheError(TrelloSyncError):
    """Raised when the board/list cache file is absent or malformed."""


class SunsetError(TrelloSyncError):
    """Raised when no sunset time can be produced for today."""
