import uuid
from datetime import datetime, timezone

import pytest

from lakerunner.lockmgr.work_item import WorkItem
from lakerunner.lrdb.models import ActionEnum, Range, SignalEnum

ORG = uuid.UUID("123e4567-e89b-12d3-a456-426614174001")
START = datetime(2025, 6, 1, tzinfo=timezone.utc)
END = datetime(2025, 6, 2, tzinfo=timezone.utc)


class FakeManager:
    def __init__(self, error=None):
        self.completed = []
        self.failed = []
        self.error = error

    def _complete(self, item):
        self.completed.append(item.id)
        if self.error:
            raise self.error

    def _fail(self, item):
        self.failed.append(item.id)
        if self.error:
            raise self.error


def make_item(manager=None, item_id=42):
    return WorkItem(
        id=item_id,
        organization_id=ORG,
        instance_num=3,
        dateint=20250601,
        frequency_ms=60000,
        signal=SignalEnum.METRICS,
        tries=2,
        action=ActionEnum.ROLLUP,
        ts_range=Range(START, END),
        priority=7,
        runnable_at=START,
        manager=manager,
    )


def test_complete_calls_manager_once():
    manager = FakeManager()
    item = make_item(manager)
    item.complete()
    item.complete()
    assert manager.completed == [42]
    assert item.closed is True


def test_fail_calls_manager_once():
    manager = FakeManager()
    item = make_item(manager)
    item.fail()
    item.fail()
    assert manager.failed == [42]


def test_fail_after_complete_does_nothing():
    manager = FakeManager()
    item = make_item(manager)
    item.complete()
    item.fail()
    assert manager.completed == [42]
    assert manager.failed == []


def test_complete_without_manager_raises_then_is_closed():
    item = make_item()
    with pytest.raises(RuntimeError):
        item.complete()
    assert item.closed is True
    assert item.complete() is None


def test_fail_without_manager_raises():
    item = make_item()
    with pytest.raises(RuntimeError):
        item.fail()


def test_manager_error_propagates():
    manager = FakeManager(error=ValueError("db down"))
    item = make_item(manager)
    with pytest.raises(ValueError, match="db down"):
        item.complete()


def test_as_map():
    item = make_item()
    assert item.as_map() == {
        "id": 42,
        "orgId": ORG,
        "instanceNum": 3,
        "dateint": 20250601,
        "frequencyMs": 60000,
        "signal": SignalEnum.METRICS,
        "tries": 2,
        "action": ActionEnum.ROLLUP,
        "tsRange": Range(START, END),
        "priority": 7,
        "runnableAt": START,
    }