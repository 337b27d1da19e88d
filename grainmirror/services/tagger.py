"""
Tagger — give an untagged file its grainorder and timestamp

    notes.md  ->  zvsnmh-12025-10-28--1315-pdt--notes.md

The code comes from the allocator, over the codes already present in the
file's directory, so the new file sorts ahead of everything there. An empty
directory starts at the configured start code.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from ..core.allocator import allocate_next
from ..core.filesystem import LocalFilesystem
from ..core.grainorder import LAST_CODE
from ..core.naming import TZ_PATTERN, TaggedName, parse_tagged_name, used_codes_in
from ..errors import AlreadyTagged, SourceNotFound

logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class Tagger:
    """Renames files into the tagged form, allocating codes per directory."""

    def __init__(
        self,
        fs: Optional[LocalFilesystem] = None,
        start: str = LAST_CODE,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.fs = fs or LocalFilesystem()
        self.start = start
        self.clock = clock or _local_now

    def next_code(self, directory) -> str:
        """
        Code the next tagged file in directory would receive.

        Raises:
            AllocationExhausted: If no code remains below the newest one
        """
        return allocate_next(used_codes_in(self.fs.list(str(directory))), start=self.start)

    def tag(self, path, moment: Optional[datetime] = None, tz_label: Optional[str] = None) -> TaggedName:
        """
        Rename path to {code}-{timestamp}--{name}.

        Args:
            path: File to tag
            moment: Timestamp to embed (default: now, local time)
            tz_label: 3-4 letter timezone label (default: derived from moment)

        Returns:
            The new TaggedName

        Raises:
            SourceNotFound: If path does not exist
            AlreadyTagged: If the name already carries a tag
            AllocationExhausted: If the directory has no code left
            ValueError: If tz_label is not 3-4 lowercase letters
        """
        path = os.path.abspath(os.path.expanduser(str(path)))
        if not self.fs.exists(path):
            raise SourceNotFound(path)

        directory, name = os.path.split(path)
        if parse_tagged_name(name) is not None:
            raise AlreadyTagged(path)

        moment, tz_label = self._resolve_moment(moment or self.clock(), tz_label)
        tagged = TaggedName.from_moment(self.next_code(directory), moment, tz_label, name)

        self.fs.rename(path, os.path.join(directory, tagged.filename))
        logger.info("Tagged %s as %s", name, tagged.filename)
        return tagged

    def _resolve_moment(self, moment: datetime, tz_label: Optional[str]) -> Tuple[datetime, str]:
        if tz_label is not None:
            return moment, tz_label

        # Abbreviations like "PDT" are kept; offsets like "+0530" fall back to UTC
        name = (moment.tzname() or "").lower()
        if TZ_PATTERN.match(name):
            return moment, name
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment, "utc"
