"""Trigram similarity for fuzzy name matching.

Strings are compared as sets of 3-codepoint substrings. Python strings are
sequences of code points, so slicing never splits a multi-byte character.
"""

from __future__ import annotations

__all__ = ["similarity", "trigrams"]

_PAD_LEFT = "  "
_PAD_RIGHT = " "


def trigrams(s: str) -> set[str]:
    """Splits a string into its set of padded trigrams.

    The input is padded with two leading spaces and one trailing space, so
    a string of n code points yields at most n + 1 trigrams. The empty
    string has no trigrams.

    Args:
        s: The string to split.

    Returns:
        Deduplicated set of trigrams.
    """
    if not s:
        return set()
    padded = f"{_PAD_LEFT}{s}{_PAD_RIGHT}"
    return {padded[i : i + 3] for i in range(len(padded) - 2)}


def similarity(a: str, b: str) -> float:
    """Jaccard index of the trigram sets of two strings.

    Args:
        a: First string.
        b: Second string.

    Returns:
        Score in [0, 1]; 0.0 when both strings are empty.
    """
    left = trigrams(a)
    right = trigrams(b)
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)
