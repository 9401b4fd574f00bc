"""
Organization clock.

Every date decision in the pipeline is made on the civil calendar of one
fixed zone, never on raw instants, so that 23:30 and 00:30 are compared as
the days they are in the office.
"""

from collections.abc import Callable
from datetime import date, datetime, time, timedelta, tzinfo

from dateutil import tz


class Clock:
    """Current time and civil-date arithmetic in the organization zone."""

    def __init__(self, zone_name: str, now_fn: Callable[[tzinfo], datetime] | None = None):
        """
        Args:
            zone_name: IANA zone name, e.g. "Asia/Kolkata"
            now_fn: Optional replacement for datetime.now, receives the zone.
                    Used by tests to freeze time.
        """
        zone = tz.gettz(zone_name)
        if zone is None:
            raise ValueError(f"Unknown timezone: {zone_name}")

        self.zone_name = zone_name
        self.zone = zone
        self._now_fn = now_fn or datetime.now

    def now(self) -> datetime:
        return self.localize(self._now_fn(self.zone))

    def localize(self, value: datetime) -> datetime:
        """Express value in the organization zone. Naive values are taken as local."""
        if value.tzinfo is None:
            return value.replace(tzinfo=self.zone)
        return value.astimezone(self.zone)

    def civil_date(self, instant: datetime) -> date:
        return self.localize(instant).date()

    def today(self) -> date:
        return self.civil_date(self.now())

    def start_of_day(self, day: date) -> datetime:
        return self.at(day, time.min)

    def at(self, day: date, clock_time: time) -> datetime:
        return datetime.combine(day, clock_time, tzinfo=self.zone)

    def max_allowed_date(self, max_advance_days: int) -> date:
        return self.today() + timedelta(days=max_advance_days)

    def from_epoch(self, timestamp: str | float) -> datetime:
        """Convert a transport timestamp such as Slack's "1712312345.000200"."""
        return datetime.fromtimestamp(float(timestamp), tz=self.zone)
