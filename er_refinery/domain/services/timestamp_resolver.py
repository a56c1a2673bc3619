"""Timestamp Resolution Service.

Raw visit timestamps arrive in several regional encodings. This service tries
the configured encodings in order and reports one of three outcomes: a
resolved instant, an absent value, or unparseable text. Absent and
unparseable both surface as a missing timestamp downstream but stay distinct
here for data-quality auditing.

Architecture:
    - Pure domain service, stateless after construction
    - Month names are matched against a fixed English table so parsing does
      not depend on the process locale
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from er_refinery.domain.enums import TimestampOutcome
from er_refinery.domain.pipeline_config import TimestampEncoding

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
_MONTH_NUMBERS = {name.upper(): index for index, name in enumerate(MONTH_ABBREVIATIONS, start=1)}
_ALPHA_RUN = re.compile(r"[A-Za-z]+")


@dataclass(frozen=True)
class TimestampResolution:
    """Outcome of resolving one raw timestamp string.

    Attributes:
        outcome: RESOLVED, ABSENT or UNPARSEABLE
        value: The instant (only when RESOLVED)
        encoding: Name of the encoding that matched (only when RESOLVED)
    """

    outcome: TimestampOutcome
    value: Optional[datetime] = None
    encoding: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome is TimestampOutcome.RESOLVED

    @property
    def is_absent(self) -> bool:
        return self.outcome is TimestampOutcome.ABSENT

    @property
    def is_unparseable(self) -> bool:
        return self.outcome is TimestampOutcome.UNPARSEABLE


ABSENT = TimestampResolution(outcome=TimestampOutcome.ABSENT)
UNPARSEABLE = TimestampResolution(outcome=TimestampOutcome.UNPARSEABLE)


class TimestampResolver:
    """Resolve raw timestamp text against an ordered list of encodings.

    The first encoding that parses the text wins. Order matters: encodings are
    tried exactly as configured.

    Example Usage:
        ```python
        resolver = TimestampResolver(config.timestamp_encodings)
        resolution = resolver.resolve("Apr 15 2024 14:30")
        resolution.value      # datetime(2024, 4, 15, 14, 30)
        resolution.encoding   # "month_name_first"
        ```
    """

    def __init__(self, encodings: Sequence[TimestampEncoding]):
        """Initialize resolver.

        Parameters:
            encodings: Candidate encodings in priority order
        """
        if not encodings:
            raise ValueError("TimestampResolver requires at least one encoding")
        self.encodings = tuple(encodings)

    def resolve(self, raw_value: Optional[str]) -> TimestampResolution:
        """Resolve a raw timestamp string.

        Parameters:
            raw_value: Raw text, possibly None or empty

        Returns:
            TimestampResolution: ABSENT for None/blank text, RESOLVED with the
            first matching encoding, otherwise UNPARSEABLE
        """
        if raw_value is None:
            return ABSENT

        text = raw_value.strip()
        if not text:
            return ABSENT

        for encoding in self.encodings:
            value = self._try_parse(text, encoding.pattern)
            if value is not None:
                return TimestampResolution(
                    outcome=TimestampOutcome.RESOLVED,
                    value=value,
                    encoding=encoding.name,
                )

        logger.debug(f"Timestamp text matched no known encoding: {raw_value!r}")
        return UNPARSEABLE

    @staticmethod
    def serialize(value: datetime, encoding: TimestampEncoding) -> str:
        """Render an instant in the given encoding (inverse of resolve).

        Month names are always rendered in English so that output can be
        resolved again regardless of locale.
        """
        pattern = encoding.pattern.replace("%b", MONTH_ABBREVIATIONS[value.month - 1])
        return value.strftime(pattern)

    @staticmethod
    def _try_parse(text: str, pattern: str) -> Optional[datetime]:
        """Parse text with one pattern, returning None instead of raising."""
        if "%b" in pattern:
            text = _month_name_to_number(text)
            if text is None:
                return None
            pattern = pattern.replace("%b", "%m")

        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            return None


def _month_name_to_number(text: str) -> Optional[str]:
    """Replace the first alphabetic run with its two-digit month number.

    Returns None when the text has no alphabetic run or the run is not a
    three-letter English month abbreviation.
    """
    match = _ALPHA_RUN.search(text)
    if match is None:
        return None

    month = _MONTH_NUMBERS.get(match.group(0).upper())
    if month is None:
        return None

    return f"{text[:match.start()]}{month:02d}{text[match.end():]}"
