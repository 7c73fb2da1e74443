"""Commit times and their relative representation."""

import math
import re
from datetime import datetime, timezone, tzinfo
from functools import total_ordering
from typing import Any, Optional

SECONDS_PER_YEAR = 60 * 60 * 24 * 365
SECONDS_PER_WEEK = 60 * 60 * 24 * 7
SECONDS_PER_DAY = 60 * 60 * 24
SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_MINUTE = 60

# Checked in order after years and months; seconds are the fallback.
RELATIVE_UNITS = (
    (SECONDS_PER_WEEK, "w"),
    (SECONDS_PER_DAY, "d"),
    (SECONDS_PER_HOUR, "h"),
    (SECONDS_PER_MINUTE, "m"),
)

# Months are only shown once the week count goes past this.
MONTH_MIN_WEEKS = 4

TIME_FORMAT = "%Y-%m-%d %H:%M %z"
TIME_STRING_PATTERN = re.compile(r"^(?P<time>\d{4}-\d{2}-\d{2} \d{2}:\d{2} [+-]\d{4})(?: \(.*\))?$")


def round_half_away(value: float) -> int:
    """Round to the nearest integer, with halves going away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def count_relative(seconds: float, unit_seconds: int) -> int:
    """Count whole units in a signed duration.

    Durations shorter than one unit count as zero rather than being rounded up.
    """
    if abs(seconds) < unit_seconds:
        return 0
    return round_half_away(seconds / unit_seconds)


@total_ordering
class CommitTime:
    """A branch's last commit time and its relative time representation.

    The relative label is computed once, against the reference time given at
    construction, and is not refreshed afterwards.
    """

    def __init__(self, time: datetime, now: Optional[datetime] = None) -> None:
        """Initialize commit time.

        Args:
            time: Commit instant. Naive datetimes are taken as local time.
            now: Reference instant, defaults to the current time. Naive datetimes are taken as local time.
        """
        if time.tzinfo is None:
            time = time.astimezone()
        if now is None:
            now = CommitTime.current_time()
        elif now.tzinfo is None:
            now = now.astimezone()
        self._time = time
        self._now = now

        suffix = "from now" if self.seconds_from_now() > 0 else "ago"
        self._time_ago = f"{self._relative_label()} {suffix}"

    @property
    def time(self) -> datetime:
        """Commit instant."""
        return self._time

    @property
    def now(self) -> datetime:
        """Reference instant the relative label was computed against."""
        return self._now

    @property
    def time_ago(self) -> str:
        return self._time_ago

    @staticmethod
    def current_time() -> datetime:
        """Get the current time."""
        return datetime.now(timezone.utc)

    @classmethod
    def from_timestamp(
        cls,
        seconds: float,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
    ) -> "CommitTime":
        """Create a commit time from epoch seconds, in local time unless `tz` is given."""
        if tz is None:
            time = datetime.fromtimestamp(seconds).astimezone()
        else:
            time = datetime.fromtimestamp(seconds, tz=tz)
        return cls(time, now)

    @classmethod
    def parse(cls, text: str, now: Optional[datetime] = None) -> "CommitTime":
        """Parse a string produced by `str()`.

        The relative label in parentheses is ignored and recomputed against `now`.

        Raises:
            ValueError: If the string is not a formatted commit time
        """
        match = TIME_STRING_PATTERN.match(text.strip())
        if not match:
            raise ValueError(f"Invalid commit time: {text!r}")
        return cls(datetime.strptime(match.group("time"), TIME_FORMAT), now)

    def seconds_from_now(self) -> float:
        """Signed seconds between the reference time and the commit time."""
        return (self.time - self.now).total_seconds()

    def count_relative_years(self) -> int:
        return count_relative(self.seconds_from_now(), SECONDS_PER_YEAR)

    def count_relative_months(self) -> int:
        # Calendar months, counted in the commit's own timezone
        now = self.now.astimezone(self.time.tzinfo)
        return (self.time.year * 12 + self.time.month) - (now.year * 12 + now.month)

    def count_relative_weeks(self) -> int:
        return count_relative(self.seconds_from_now(), SECONDS_PER_WEEK)

    def count_relative_seconds(self) -> int:
        return int(self.seconds_from_now())

    def _relative_label(self) -> str:
        """Pick the largest non-zero unit for the distance to the reference time."""
        years = abs(self.count_relative_years())
        if years > 0:
            return f"{years}y"

        months = abs(self.count_relative_months())
        if months > 0 and abs(self.count_relative_weeks()) > MONTH_MIN_WEEKS:
            return f"{months}mo"

        seconds = self.seconds_from_now()
        for unit_seconds, unit in RELATIVE_UNITS:
            count = abs(count_relative(seconds, unit_seconds))
            if count > 0:
                return f"{count}{unit}"

        return f"{abs(self.count_relative_seconds())}s"

    def to_i(self) -> int:
        """Epoch seconds of the commit time."""
        return int(self.time.timestamp())

    def iso8601(self) -> str:
        return self.time.isoformat()

    def __int__(self) -> int:
        return self.to_i()

    def __str__(self) -> str:
        return f"{self.time.strftime(TIME_FORMAT)} ({self.time_ago})"

    def __repr__(self) -> str:
        return f"CommitTime({self.iso8601()!r}, {self.time_ago!r})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, CommitTime):
            return NotImplemented
        return self.to_i() == other.to_i()

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, CommitTime):
            return NotImplemented
        return self.to_i() < other.to_i()

    def __hash__(self) -> int:
        return hash(self.to_i())


def compare(first: CommitTime, second: CommitTime) -> int:
    """Compare two commit times by epoch seconds, for use with `functools.cmp_to_key`."""
    return (first.to_i() > second.to_i()) - (first.to_i() < second.to_i())
