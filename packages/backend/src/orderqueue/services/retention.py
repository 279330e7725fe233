"""Retention policies — when a finished order stops showing up.

Learn: Retention is enforced lazily, on every queue read, never by a
background timer. A policy splits the stored items into (visible, expired):
- visible items are returned to the caller
- expired items are purged from storage when `purges` is True

Two policies exist and a deployment runs exactly one of them:

  time-boxed  done items stay visible for a window (24h) after their last
              update, then get purged. Default for the JSON file backend.
  hide-done   done is terminal and queue-invisible: every done item is
              hidden immediately, but kept in storage. Default for the
              document store.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from orderqueue.schemas.queue import QueueItem

DONE = "done"


class RetentionPolicy(ABC):
    name: str = ""
    purges: bool = False

    @abstractmethod
    def partition(
        self, items: list[QueueItem], now: datetime
    ) -> tuple[list[QueueItem], list[QueueItem]]:
        """Split items into (visible, expired), keeping stored order."""


class TimeBoxedRetention(RetentionPolicy):
    """Hide and purge done items older than `window`."""

    name = "time-boxed"
    purges = True

    def __init__(self, window: timedelta = timedelta(hours=24)):
        self.window = window

    def is_expired(self, item: QueueItem, now: datetime) -> bool:
        return item.status == DONE and now - item.updated_at >= self.window

    def partition(self, items, now):
        visible, expired = [], []
        for item in items:
            (expired if self.is_expired(item, now) else visible).append(item)
        return visible, expired


class HideDoneRetention(RetentionPolicy):
    """Hide every done item; never delete anything."""

    name = "hide-done"

    def partition(self, items, now):
        return [item for item in items if item.status != DONE], []


def build_policy(name: str, window_hours: int = 24) -> RetentionPolicy:
    if name == TimeBoxedRetention.name:
        return TimeBoxedRetention(timedelta(hours=window_hours))
    if name == HideDoneRetention.name:
        return HideDoneRetention()
    raise ValueError(f"Unknown retention policy: {name!r}")
