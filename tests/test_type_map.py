import pytest

from querytool.type_map import TYPE_MAP, friendly_type
from querytool.types import FriendlyType


@pytest.mark.parametrize(
    "native, expected",
    [
        ("int", FriendlyType.NUMBER),
        ("BIGINT", FriendlyType.NUMBER),
        ("tinyint", FriendlyType.YES_NO),
        ("bit", FriendlyType.YES_NO),
        ("decimal", FriendlyType.CURRENCY),
        ("smallmoney", FriendlyType.CURRENCY),
        ("double", FriendlyType.NUMBER),
        ("nvarchar", FriendlyType.TEXT),
        ("mediumtext", FriendlyType.LONG_TEXT),
        ("datetime2", FriendlyType.DATE_TIME),
        ("timestamp", FriendlyType.DATE_TIME),
        ("date", FriendlyType.DATE),
        ("time", FriendlyType.TIME),
        ("json", FriendlyType.JSON),
        ("point", FriendlyType.TEXT),
        ("enum", FriendlyType.TEXT),
    ],
)
def test_friendly_type(native, expected):
    assert friendly_type(native) is expected


def test_unknown_and_empty_types_are_text():
    assert friendly_type("geometry") is FriendlyType.TEXT
    assert friendly_type("") is FriendlyType.TEXT
    assert friendly_type(None) is FriendlyType.TEXT


def test_mapping_is_deterministic_for_every_key():
    for native, expected in TYPE_MAP:
        assert friendly_type(native) is expected
        assert friendly_type(native) is friendly_type(native.upper())
