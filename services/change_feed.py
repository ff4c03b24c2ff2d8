# In-process change feed for realtime views
# Row changes on watched tables are captured at flush time and published only after the commit succeeds.

import asyncio
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

WATCHED_TABLES = (
    "tasks",
    "applications",
    "payments",
    "shipment_requests",
    "disputes",
    "notifications",
)

_PENDING_KEY = "change_feed_pending"


class Change:
    def __init__(self, table: str, action: str, record: dict):
        self.table = table
        self.action = action  # INSERT | UPDATE | DELETE
        self.record = record

    def to_dict(self) -> dict:
        return {"table": self.table, "action": self.action, "record": self.record}


class Subscription:
    """One listener on a table, optionally narrowed by equality filters."""

    def __init__(self, table: str, filters: Optional[Dict[str, str]] = None):
        self.table = table
        self.filters = filters or {}
        self.queue: asyncio.Queue = asyncio.Queue()
        self._loop = asyncio.get_running_loop()

    def matches(self, change: Change) -> bool:
        if change.table != self.table:
            return False
        return all(change.record.get(k) == v for k, v in self.filters.items())

    def deliver(self, change: Change):
        self._loop.call_soon_threadsafe(self.queue.put_nowait, change)


class ChangeFeed:
    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, table: str, filters: Optional[Dict[str, str]] = None) -> Subscription:
        """Start receiving changes. Must be called from inside the event loop."""
        sub = Subscription(table, filters)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription):
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, change: Change):
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(change)]
        for sub in targets:
            try:
                sub.deliver(change)
            except RuntimeError:
                # Event loop of the subscriber is gone
                logger.warning(f"Dropping stale subscription on {sub.table}")
                self.unsubscribe(sub)


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def snapshot(obj) -> dict:
    """Column values already loaded on the instance; never triggers a load."""
    state = inspect(obj)
    record = {
        attr.key: _jsonable(state.dict.get(attr.key))
        for attr in state.mapper.column_attrs
    }
    # Expired instances still know their primary key
    if state.identity:
        for column, value in zip(state.mapper.primary_key, state.identity):
            if record.get(column.key) is None:
                record[column.key] = value
    return record


def _capture(session: Session, flush_context):
    pending = session.info.setdefault(_PENDING_KEY, [])
    for action, objects in (
        ("INSERT", session.new),
        ("UPDATE", session.dirty),
        ("DELETE", session.deleted),
    ):
        for obj in objects:
            table = getattr(obj, "__tablename__", None)
            if table not in WATCHED_TABLES:
                continue
            if action == "UPDATE" and not session.is_modified(obj, include_collections=False):
                continue
            pending.append(Change(table, action, snapshot(obj)))


def _discard(session: Session, *args):
    session.info.pop(_PENDING_KEY, None)


_installed_feeds: List[ChangeFeed] = []


def _publish(session: Session):
    changes = session.info.pop(_PENDING_KEY, [])
    for feed in _installed_feeds:
        for change in changes:
            feed.publish(change)


def install_change_feed(feed: ChangeFeed, session_cls=Session):
    """Hook the feed into the ORM session lifecycle. Safe to call more than once."""
    if feed in _installed_feeds:
        return
    if not _installed_feeds:
        event.listen(session_cls, "after_flush", _capture)
        event.listen(session_cls, "after_commit", _publish)
        event.listen(session_cls, "after_rollback", _discard)
    _installed_feeds.append(feed)


change_feed = ChangeFeed()
