"""String normalization utilities for tag matching.

Centralizes normalization so interest tags, event tags, streaming genres
and snapshot keys all compare in the same canonical form.
"""

from __future__ import annotations

import re
import unicodedata

# Separators that become "_" in a tag value ("hip-hop", "drum and bass")
_TAG_SEPARATORS = re.compile(r"[\s\-/]+")


def normalize(s: str) -> str:
    """Normalize string for comparison: lowercase, strip accents/punctuation, collapse whitespace."""
    s = unicodedata.normalize("NFKD", s.lower())
    s = "".join(c for c in s if not unicodedata.combining(c))
    s = re.sub(r"[^\w\s&-]", "", s)
    return re.sub(r"\s+", " ", s).strip()


def normalize_tag_value(s: str) -> str:
    """Canonical tag value: "Hip Hop" -> "hip_hop", "R&B" -> "rnb".

    Event tags and interest tags are stored in this form; anything coming
    from a streaming service or a snapshot key goes through here first.
    """
    s = normalize(s).replace("&", "n")
    s = _TAG_SEPARATORS.sub("_", s)
    return s.strip("_")


def normalize_neighborhood(s: str) -> str:
    """Neighborhood display form: trimmed, single-spaced, title-cased."""
    return re.sub(r"\s+", " ", s).strip().title()
