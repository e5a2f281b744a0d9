"""Title and artist string helpers shared by the matcher and tag handler."""

import re
from typing import List

_FEAT_RE = re.compile(r"\(*feat\.*.*\)*$")
_ORIGINAL_MIX_RE = re.compile(r"\(*original( (mix|version))*\)*$")
_ARTIST_SUFFIX_RE = re.compile(r"\s*\(\d{1,2}\)$")
_STRICT_STRIP = str.maketrans("", "", " ;&")

ARTIST_SEPARATORS = (";", ",", "/")


def clean_title(title: str, strict: bool = False) -> str:
    """Normalize a track title for searching and comparison.

    Lowercases, then drops a trailing "feat..." credit and a trailing
    "original mix"/"original version" marker. With ``strict`` the
    result also loses spaces, semicolons and ampersands, which is the
    form used for equality and similarity checks.
    """
    out = title.lower()
    for pattern in (_FEAT_RE, _ORIGINAL_MIX_RE):
        out, removed = pattern.subn("", out, count=1)
        if removed:
            # "Name - Original Mix" leaves a dangling dash
            out = out.rstrip(" -")
    if strict:
        return out.translate(_STRICT_STRIP)
    return out


def clean_artist(name: str) -> str:
    """Strip the Discogs disambiguation suffix, e.g. 'Artist (2)'."""
    return _ARTIST_SUFFIX_RE.sub("", name)


def parse_artist_tag(value: str) -> List[str]:
    """Split a raw artist tag on the first known separator it contains."""
    for separator in ARTIST_SEPARATORS:
        if separator in value:
            parts = [part.strip() for part in value.split(separator)]
            return [part for part in parts if part]
    value = value.strip()
    return [value] if value else []
