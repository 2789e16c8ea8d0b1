import logging
from datetime import date, datetime, time, timedelta, timezone

import requests

from trellosync.Exceptions import RemoteError, SunsetError
from trellosync.helpers.CacheHelper import SunsetCache
from trellosync.Utils import p_success

SUNSET_API_URL = "https://api.sunrisesunset.io/json"
WINDOW_DAYS = 30

# Orem, Utah
DEFAULT_LATITUDE = 40.2969
DEFAULT_LONGITUDE = -111.6946


def format_clock(value: datetime):
    return f"{value.hour % 12 or 12}:{value:%M %p %Z}"


class SunsetHelper:
    """
    Looks up today's sunset time. A miss on the local cache fetches a whole
    30-day window in one request, so the API is hit about once a month.
    """

    def __init__(self, cache_store, session=None, tz=None):
        self.cache_store = cache_store
        self.session = session or requests.Session()
        self.tz = tz

    def now(self):
        return datetime.now(self.tz) if self.tz else datetime.now().astimezone()

    def to_local(self, value: datetime):
        # Offset is looked up per instant, days after a DST change differ from today
        return value.astimezone(self.tz) if self.tz else value.astimezone()

    def local_midnight(self, day: date):
        if self.tz:
            return datetime.combine(day, time.min, tzinfo=self.tz)
        return datetime.combine(day, time.min).astimezone()

    def get_today_sunset(self, lat=DEFAULT_LATITUDE, lng=DEFAULT_LONGITUDE):
        now = self.now()
        today = now.date().isoformat()

        cached = self.cache_store.lookup(today, lat, lng, now)
        if cached:
            return cached

        logging.info("  - Cache miss - fetching sunset data for next 30 days...")
        return self.fetch_and_cache(lat, lng, now)

    def fetch_sunset_window(self, lat, lng, start: date, end: date):
        params = {
            "lat": f"{lat:.6f}",
            "lng": f"{lng:.6f}",
            "date_start": start.isoformat(),
            "date_end": end.isoformat(),
            "time_format": "24",
        }
        try:
            response = self.session.get(SUNSET_API_URL, params=params)
        except requests.exceptions.RequestException as e:
            raise RemoteError("Sunset", f"request failed: {e}") from e
        if response.status_code != 200:
            raise RemoteError("Sunset", f"request failed with status {response.status_code}", response.status_code)
        try:
            return response.json().get("results", [])
        except ValueError as e:
            raise RemoteError("Sunset", "invalid JSON response") from e

    def fetch_and_cache(self, lat, lng, now: datetime):
        start = now.date()
        end = start + timedelta(days=WINDOW_DAYS - 1)

        data = {}
        for result in self.fetch_sunset_window(lat, lng, start, end):
            try:
                clock = datetime.strptime(result["sunset"], "%H:%M:%S")
                day = date.fromisoformat(result["date"])
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"  - Warning: failed to parse sunset entry {result}: {e}")
                continue
            sunset_utc = datetime.combine(day, time(clock.hour, clock.minute), tzinfo=timezone.utc)
            data[result["date"]] = format_clock(self.to_local(sunset_utc))

        cache = SunsetCache(
            latitude=lat,
            longitude=lng,
            cached_until=self.local_midnight(end + timedelta(days=1)),
            data=data,
        )
        self.cache_store.save(cache)
        p_success(f"Cached sunset data for 30 days (until {end.isoformat()})")

        today = start.isoformat()
        if today not in data:
            raise SunsetError(f"no sunset data found for today ({today})")
        return data[today]
