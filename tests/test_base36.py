import uuid

import pytest

from lakerunner.base36 import base36_to_uuid, uuid_to_base36

CASES = [
    ("123e4567-e89b-12d3-a456-426614174001", "12vqjrnxk8whv3i8qi6qgrlz5"),
    ("00000000-0000-0000-0000-000000000000", "0000000000000000000000000"),
    ("00000000-0000-0000-0000-000000000001", "0000000000000000000000001"),
    ("ffffffff-ffff-ffff-ffff-ffffffffffff", "f5lxx1zz5pnorynqglhzmsp33"),
]


@pytest.mark.parametrize("uuid_text, expected", CASES)
def test_uuid_to_base36(uuid_text, expected):
    assert uuid_to_base36(uuid.UUID(uuid_text)) == expected


@pytest.mark.parametrize("uuid_text, encoded", CASES)
def test_base36_to_uuid(uuid_text, encoded):
    assert base36_to_uuid(encoded) == uuid.UUID(uuid_text)


def test_invalid_base36_string():
    with pytest.raises(ValueError, match="invalid base36 string"):
        base36_to_uuid("invalid base36 string")


def test_base36_string_too_large():
    with pytest.raises(ValueError, match="too large"):
        base36_to_uuid("zzzzzzzzzzzzzzzzzzzzzzzzz")


def test_empty_string_is_invalid():
    with pytest.raises(ValueError):
        base36_to_uuid("")


def test_round_trip_random_uuids():
    for _ in range(50):
        value = uuid.uuid4()
        encoded = uuid_to_base36(value)
        assert len(encoded) == 25
        assert base36_to_uuid(encoded) == value


def test_upper_case_accepted():
    assert base36_to_uuid("12VQJRNXK8WHV3I8QI6QGRLZ5") == uuid.UUID(
        "123e4567-e89b-12d3-a456-426614174001"
    )