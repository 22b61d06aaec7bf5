"""Field normalisation for change detection.

Scraped sources format the same value inconsistently (``"1,935 sqft"`` on one
run, ``"1935 Sq.Ft"`` on the next).  :func:`normalize` reduces a value to a
comparison key so those cosmetic differences never count as new
information::

    normalize("1,935 sqft") == normalize("1935 Sq.Ft")   # "1935sqft"
    normalize("3 BHK") == normalize("3bhk")             # "3bhk"

The key is only used for comparison; stored and displayed values keep their
original formatting.
"""

from __future__ import annotations

import re

__all__ = ["normalize"]

# Anything that is not an ASCII lowercase letter or digit (applied after
# lower-casing).
_NON_ALNUM_RE: re.Pattern[str] = re.compile(r"[^a-z0-9]+")


def normalize(value: object) -> str:
    """Return the canonical comparison key for a raw field value.

    Lower-cases the input and removes every character that is not an ASCII
    letter or digit.  ``None`` yields ``""``; other non-string values are
    converted with ``str()`` first.

    The function is total and idempotent:
    ``normalize(normalize(x)) == normalize(x)``.

    Args:
        value: Raw field value, usually a string from a scraper.

    Returns:
        The normalised key, possibly empty.
    """
    if value is None:
        return ""
    return _NON_ALNUM_RE.sub("", str(value).lower())
