"""Complaint Category Normalization Service.

Maps free-text complaint labels onto the canonical complaint vocabulary with
an explicit lookup table. Generic title-casing is not used: it would turn
"Shortness of Breath" into "Shortness Of Breath".
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class CategoryNormalizer:
    """Normalize raw complaint text through an immutable lookup table.

    Lookup key is the upper-cased, trimmed raw text. Unknown complaints pass
    through unchanged so an unexpected label never fails the pipeline.
    """

    def __init__(self, complaint_map: Mapping[str, str]):
        """Initialize normalizer.

        Parameters:
            complaint_map: Raw complaint key -> canonical label. Keys are
                           normalized (trimmed, upper-cased) on construction.
        """
        self._table = MappingProxyType(
            {key.strip().upper(): canonical for key, canonical in complaint_map.items()}
        )

    @property
    def table(self) -> Mapping[str, str]:
        """Read-only view of the normalized lookup table."""
        return self._table

    @property
    def canonical_labels(self) -> frozenset[str]:
        return frozenset(self._table.values())

    @staticmethod
    def normalize_key(raw_value: str) -> str:
        return raw_value.strip().upper()

    def normalize(self, raw_value: Optional[str]) -> Optional[str]:
        """Return the canonical label for raw complaint text.

        Parameters:
            raw_value: Raw complaint text (may be None)

        Returns:
            Canonical label, or the raw value unchanged when no entry matches
        """
        if raw_value is None:
            return None

        canonical = self._table.get(self.normalize_key(raw_value))
        if canonical is None:
            logger.debug(f"Complaint not in lookup table, passing through: {raw_value!r}")
            return raw_value
        return canonical
