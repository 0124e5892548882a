from __future__ import annotations

from typing import List, Optional, Tuple

from querytool.types import FriendlyType

# Ordered: the first substring found in the lower-cased native type wins, so
# more specific names come before the generic ones they contain
# ("tinyint" before "int", "datetime" before "date" and "time").
TYPE_MAP: List[Tuple[str, FriendlyType]] = [
    ("tinyint", FriendlyType.YES_NO),
    ("bit", FriendlyType.YES_NO),
    ("bool", FriendlyType.YES_NO),
    ("point", FriendlyType.TEXT),
    ("int", FriendlyType.NUMBER),
    ("decimal", FriendlyType.CURRENCY),
    ("numeric", FriendlyType.CURRENCY),
    ("money", FriendlyType.CURRENCY),
    ("float", FriendlyType.NUMBER),
    ("double", FriendlyType.NUMBER),
    ("real", FriendlyType.NUMBER),
    ("year", FriendlyType.NUMBER),
    ("varchar", FriendlyType.TEXT),
    ("char", FriendlyType.TEXT),
    ("text", FriendlyType.LONG_TEXT),
    ("datetime", FriendlyType.DATE_TIME),
    ("timestamp", FriendlyType.DATE_TIME),
    ("date", FriendlyType.DATE),
    ("time", FriendlyType.TIME),
    ("enum", FriendlyType.TEXT),
    ("json", FriendlyType.JSON),
]


def friendly_type(native_type: Optional[str]) -> FriendlyType:
    """Map a native column type to its friendly type; unknown types are Text."""
    key = (native_type or "").strip().lower()
    if not key:
        return FriendlyType.TEXT
    for needle, friendly in TYPE_MAP:
        if needle in key:
            return friendly
    return FriendlyType.TEXT
