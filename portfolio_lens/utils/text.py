"""Label normalization shared by header matching and alias lookups."""

from __future__ import annotations

import re
import unicodedata

_NON_LABEL_CHARS = re.compile(r"[^a-z0-9%&]+")


def normalize_label(value: object) -> str:
    """Lower-case, strip accents and collapse punctuation to single spaces.

    ``"Var. quot. %"`` becomes ``"var quot %"`` and ``"Quantité"`` becomes
    ``"quantite"`` so synonyms can be written once in plain ASCII.
    """
    text = unicodedata.normalize("NFKD", str(value or ""))
    text = "".join(char for char in text if not unicodedata.combining(char))
    return _NON_LABEL_CHARS.sub(" ", text.lower()).strip()


def contains_phrase(haystack: str, phrase: str) -> bool:
    """Whole-word containment on already-normalized labels."""
    if not phrase:
        return False
    return f" {phrase} " in f" {haystack} "
