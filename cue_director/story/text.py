"""
Text utilities shared by cue extraction and story alignment.

Tokenization keeps separators so a story can be re-rendered exactly;
normalization and loose equality make spoken words comparable to printed
ones ("wolves" ~ "wolf", "barked" ~ "bark", "Cinderella's" ~ "cinderella").
"""

from __future__ import annotations

import re

_SPLIT = re.compile(r"(\s+|[^\w']+)")
_NON_WORD = re.compile(r"[^a-z0-9']+")
_SPOKEN_NON_WORD = re.compile(r"[^a-z0-9'\s]+")
_POSSESSIVE = re.compile(r"'(s)?$")
_SUFFIX = re.compile(r"(ing|ed|ly|er|est)$")
_PLURAL = re.compile(r"(es|s)$")

IRREGULAR: dict[str, str] = {
    "wolves": "wolf",
    "children": "child",
    "men": "man",
    "women": "woman",
    "geese": "goose",
    "mice": "mouse",
    "feet": "foot",
    "teeth": "tooth",
}

STOP_WORDS = frozenset({"the", "and", "a", "an", "to", "of", "in", "on", "at", "with"})
"""Story words the forward scan may skip over."""

RECOVERY_STOP_WORDS = STOP_WORDS | {"it", "is", "was"}
"""Story words recovery may skip inside a matching run."""


def tokenize(text: str) -> list[str]:
    """Split into alternating word and separator tokens.

    Example:
        tokenize("Once upon a time.")
        # ["Once", " ", "upon", " ", "a", " ", "time", "."]
    """
    return [part for part in _SPLIT.split(text) if part]


def normalize_word(token: str) -> str:
    """Lowercase and drop everything but letters, digits and apostrophes.

    Separators normalize to "".
    """
    return _NON_WORD.sub("", str(token).lower())


def spoken_words(text: str) -> list[str]:
    """Normalized words of a transcript fragment."""
    return _SPOKEN_NON_WORD.sub(" ", (text or "").lower()).split()


def stem(word: str) -> str:
    """Strip a possessive, then one derivational suffix, then a plural."""
    base = _POSSESSIVE.sub("", word)
    base = _SUFFIX.sub("", base)
    return _PLURAL.sub("", base)


def eq_loose(a: str, b: str) -> bool:
    """Loose equality of two normalized words."""
    if not a or not b:
        return a == b
    if a == b:
        return True
    a1, b1 = stem(a), stem(b)
    if a1 and b1 and a1 == b1:
        return True
    return IRREGULAR.get(a) == b or IRREGULAR.get(b) == a
