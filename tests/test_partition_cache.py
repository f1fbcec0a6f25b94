import uuid

from lakerunner.lrdb.partition_cache import (
    add_flush_function,
    flush_caches,
    is_partition_table_remembered,
    remember_partition_table,
)


def _name():
    return f"mseg_{uuid.uuid4().hex}_20250101"


def test_unknown_table_not_remembered():
    assert is_partition_table_remembered(_name()) is False


def test_remember_then_check():
    name = _name()
    remember_partition_table(name)
    assert is_partition_table_remembered(name) is True


def test_flush_forgets_tables():
    name = _name()
    remember_partition_table(name)
    flush_caches()
    assert is_partition_table_remembered(name) is False


def test_remember_is_idempotent():
    name = _name()
    remember_partition_table(name)
    remember_partition_table(name)
    assert is_partition_table_remembered(name) is True
    other = _name()
    assert is_partition_table_remembered(other) is False


def test_flush_calls_registered_functions():
    calls = []
    add_flush_function(lambda: calls.append("flushed"))
    flush_caches()
    assert calls == ["flushed"]
    flush_caches()
    assert calls == ["flushed", "flushed"]