"""
Tagged filenames — {grainorder}-{timestamp}--{remainder}

The timestamp uses a 5-digit (holocene) year, a separate HHMM block and a
short lowercase timezone label:

    xzvbdh-12025-10-28--1315-pdt--readme.md
    ^^^^^^ ^^^^^^^^^^^^^^^^^^^^^^  ^^^^^^^^^
    code   timestamp               remainder

Parsing is strict about shape and ranges. Names that do not match are simply
not tagged (parse_tagged_name returns None); callers skip them.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from .grainorder import is_valid, validate


TAG_PATTERN = re.compile(
    r'^(?P<code>[xbdghjklmnsvz]{6})'
    r'-(?P<year>\d{5})-(?P<month>\d{2})-(?P<day>\d{2})'
    r'--(?P<hour>\d{2})(?P<minute>\d{2})-(?P<tz>[a-z]{3,4})'
    r'--(?P<remainder>.+)$'
)

TZ_PATTERN = re.compile(r'^[a-z]{3,4}$')

# Holocene calendar: year 2025 is written 12025
HOLOCENE_OFFSET = 10000


@dataclass(frozen=True)
class TaggedName:
    """A filename decomposed into grainorder, timestamp and free text."""
    code: str
    year: int
    month: int
    day: int
    hour: int
    minute: int
    tz: str
    remainder: str

    def __post_init__(self):
        validate(self.code)
        if not 0 <= self.year <= 99999:
            raise ValueError(f"year out of range: {self.year}")
        if not 1 <= self.month <= 12:
            raise ValueError(f"month out of range: {self.month}")
        if not 1 <= self.day <= 31:
            raise ValueError(f"day out of range: {self.day}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour out of range: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute out of range: {self.minute}")
        if not TZ_PATTERN.match(self.tz):
            raise ValueError(f"timezone label must be 3-4 lowercase letters: {self.tz!r}")
        if not self.remainder or "/" in self.remainder:
            raise ValueError(f"invalid remainder: {self.remainder!r}")

    @property
    def timestamp(self) -> str:
        """Timestamp block exactly as it appears in the filename."""
        return _timestamp_block(self.year, self.month, self.day, self.hour, self.minute, self.tz)

    @property
    def sort_value(self) -> int:
        """Integer YYYYYMMDDHHMM; larger is more recent. Timezone is ignored."""
        return (
            self.year * 10**8
            + self.month * 10**6
            + self.day * 10**4
            + self.hour * 100
            + self.minute
        )

    @property
    def filename(self) -> str:
        return f"{self.code}-{self.timestamp}--{self.remainder}"

    def with_code(self, code: str) -> "TaggedName":
        """Same timestamp and remainder under a different grainorder."""
        return replace(self, code=code)

    @classmethod
    def from_moment(cls, code: str, moment: datetime, tz: str, remainder: str) -> "TaggedName":
        return cls(
            code=code,
            year=moment.year + HOLOCENE_OFFSET,
            month=moment.month,
            day=moment.day,
            hour=moment.hour,
            minute=moment.minute,
            tz=tz,
            remainder=remainder,
        )


def parse_tagged_name(name: str) -> Optional[TaggedName]:
    """
    Decompose a filename, or return None if it is not grainorder-tagged.

    Args:
        name: Bare filename (no directory part)

    Returns:
        TaggedName, or None when the shape, the grainorder (repeated
        symbols) or any timestamp field is out of range
    """
    match = TAG_PATTERN.match(name)
    if not match or not is_valid(match.group("code")):
        return None
    try:
        return TaggedName(
            code=match.group("code"),
            year=int(match.group("year")),
            month=int(match.group("month")),
            day=int(match.group("day")),
            hour=int(match.group("hour")),
            minute=int(match.group("minute")),
            tz=match.group("tz"),
            remainder=match.group("remainder"),
        )
    except ValueError:
        return None


def format_timestamp_tag(moment: datetime, tz: str) -> str:
    """
    Timestamp block for a moment.

    Example:
        format_timestamp_tag(datetime(2025, 10, 28, 13, 15), "pdt")
        -> "12025-10-28--1315-pdt"
    """
    if not TZ_PATTERN.match(tz):
        raise ValueError(f"timezone label must be 3-4 lowercase letters: {tz!r}")
    return _timestamp_block(
        moment.year + HOLOCENE_OFFSET, moment.month, moment.day, moment.hour, moment.minute, tz
    )


def _timestamp_block(year: int, month: int, day: int, hour: int, minute: int, tz: str) -> str:
    return f"{year:05d}-{month:02d}-{day:02d}--{hour:02d}{minute:02d}-{tz}"


def used_codes_in(names: Iterable[str]) -> set:
    """Grainorders carried by the tagged names in a listing."""
    codes = set()
    for name in names:
        tagged = parse_tagged_name(name)
        if tagged is not None:
            codes.add(tagged.code)
    return codes
