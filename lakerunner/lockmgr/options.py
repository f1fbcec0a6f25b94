"""Options accepted by the work queue manager."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Protocol

MINIMUM_HEARTBEAT_INTERVAL = timedelta(seconds=10)


class Option(Protocol):
    """Something that adjusts a work queue manager when it is built."""

    def apply(self, manager: Any) -> None: ...


@dataclass(frozen=True, slots=True)
class HeartbeatIntervalOption:
    """Sets how often acquired work items are heartbeated."""

    interval: timedelta

    def apply(self, manager: Any) -> None:
        interval = self.interval
        if interval <= MINIMUM_HEARTBEAT_INTERVAL:
            interval = MINIMUM_HEARTBEAT_INTERVAL
        manager.heartbeat_interval = interval


@dataclass(frozen=True, slots=True)
class LoggerOption:
    """Sets the logger the manager reports problems to."""

    logger: logging.Logger | None

    def apply(self, manager: Any) -> None:
        manager.logger = self.logger


def with_heartbeat_interval(interval: timedelta) -> HeartbeatIntervalOption:
    """Heartbeat work items at this interval instead of once a minute.

    Intervals of 10 seconds or less are raised to 10 seconds.
    """
    return HeartbeatIntervalOption(interval)


def with_logger(logger: logging.Logger | None) -> LoggerOption:
    """Report problems to the given logger."""
    return LoggerOption(logger)