import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from trellosync.Exceptions import CacheError
from trellosync.models import CacheSnapshot

BOARD_CACHE_FILE = "trello_cache.json"
SUNSET_CACHE_FILE = "sunset_cache.json"


class JsonFileStore:
    """Whole-document JSON persistence backed by a single file."""

    def __init__(self, path):
        self.path = path

    def load(self):
        """Return the stored document. Raises OSError (FileNotFoundError when absent) or ValueError."""
        with open(self.path) as f:
            return json.load(f)

    def save(self, document):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(document, f, indent=2)


class MemoryStore:
    """In-memory stand-in for JsonFileStore."""

    def __init__(self, document=None):
        self.document = document
        self.saves = 0

    def load(self):
        if self.document is None:
            raise FileNotFoundError("memory store is empty")
        return json.loads(json.dumps(self.document))

    def save(self, document):
        self.saves += 1
        self.document = json.loads(json.dumps(document))


class BoardCache:
    """
    Snapshot of all boards and lists used for name lookups.
    There is no expiry: the snapshot is only replaced by an explicit refresh.
    """

    def __init__(self, store):
        self.store = store

    def save(self, snapshot: CacheSnapshot):
        logging.info(f"  - Saving {len(snapshot.boards)} boards and {len(snapshot.lists)} lists to cache...")
        self.store.save(snapshot.to_dict())

    def load(self) -> CacheSnapshot:
        try:
            document = self.store.load()
        except FileNotFoundError as e:
            raise CacheError(f"failed to read cache file: {e}. Run with --refresh first.") from e
        except OSError as e:
            raise CacheError(f"failed to read cache file: {e}") from e
        except ValueError as e:
            raise CacheError(f"failed to parse cache file: {e}") from e
        try:
            return CacheSnapshot.from_dict(document)
        except (KeyError, TypeError) as e:
            raise CacheError(f"malformed cache file: missing {e}") from e


@dataclass
class SunsetCache:
    latitude: float
    longitude: float
    cached_until: datetime
    data: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, document: dict) -> "SunsetCache":
        return cls(
            latitude=float(document["location"]["latitude"]),
            longitude=float(document["location"]["longitude"]),
            cached_until=datetime.fromisoformat(document["cached_until"]),
            data=dict(document["data"]),
        )

    def to_dict(self) -> dict:
        return {
            "location": {"latitude": self.latitude, "longitude": self.longitude},
            "cached_until": self.cached_until.isoformat(),
            "data": self.data,
        }

    def is_valid_for(self, lat, lng, now: datetime) -> bool:
        if self.latitude != lat or self.longitude != lng:
            return False
        return now < self.cached_until


class SunsetCacheStore:
    """Sunset cache persistence. Any read problem is reported as a miss."""

    def __init__(self, store):
        self.store = store

    def load(self) -> Optional[SunsetCache]:
        try:
            return SunsetCache.from_dict(self.store.load())
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logging.info(f"  - Ignoring unreadable sunset cache: {e}")
            return None

    def lookup(self, date_str, lat, lng, now: datetime) -> Optional[str]:
        cache = self.load()
        if cache is None or not cache.is_valid_for(lat, lng, now):
            return None
        return cache.data.get(date_str)

    def save(self, cache: SunsetCache):
        self.store.save(cache.to_dict())
