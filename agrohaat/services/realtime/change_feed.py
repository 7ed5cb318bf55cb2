"""
Row level change feed.

Interested parties register ``subscribe(table, filter, on_change)`` and get
called for every matching insert or update published by the services. It is a
UI refresh convenience only: nothing in the bid lifecycle waits on it, and a
failing subscriber never affects the publisher.
"""
import asyncio
import inspect
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union
from uuid import UUID

from loguru import logger
from tortoise.models import Model

from agrohaat.enums.change_event import ChangeEvent


@dataclass
class ChangeMessage:
    table: str
    event: ChangeEvent
    new: Dict[str, Any]
    old: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "event": self.event.value,
            "new": self.new,
            "old": self.old,
        }


OnChange = Callable[[ChangeMessage], Union[None, Awaitable[None]]]


@dataclass
class Subscription:
    id: int
    table: str
    filter: Dict[str, str]
    on_change: OnChange
    _feed: "ChangeFeed" = field(repr=False)

    def matches(self, row: Dict[str, Any]) -> bool:
        return all(str(row.get(key)) == value for key, value in self.filter.items())

    def unsubscribe(self):
        self._feed.unsubscribe(self)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def serialize_row(instance: Model) -> Dict[str, Any]:
    """Flat column -> value dict, the way the table row looks"""
    return {
        name: _jsonable(getattr(instance, name))
        for name in instance._meta.fields_db_projection
    }


class ChangeFeed:
    def __init__(self):
        self._subscriptions: Dict[str, Dict[int, Subscription]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, table: str, filter: Optional[dict], on_change: OnChange) -> Subscription:
        subscription = Subscription(
            id=next(self._ids),
            table=table,
            filter={key: str(value) for key, value in (filter or {}).items()},
            on_change=on_change,
            _feed=self,
        )
        self._subscriptions.setdefault(table, {})[subscription.id] = subscription
        logger.debug(f"Change feed subscription {subscription.id} on {table} {subscription.filter}")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        table_subscriptions = self._subscriptions.get(subscription.table, {})
        table_subscriptions.pop(subscription.id, None)
        if not table_subscriptions:
            self._subscriptions.pop(subscription.table, None)

    def subscriber_count(self, table: Optional[str] = None) -> int:
        if table is not None:
            return len(self._subscriptions.get(table, {}))
        return sum(len(subs) for subs in self._subscriptions.values())

    async def publish(self, table: str, event: ChangeEvent, row: Dict[str, Any], old: Optional[Dict[str, Any]] = None):
        message = ChangeMessage(table=table, event=event, new=row, old=old)
        for subscription in list(self._subscriptions.get(table, {}).values()):
            if not subscription.matches(row):
                continue
            try:
                result = subscription.on_change(message)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Change feed subscriber {subscription.id} failed on {table}: {e}")

    async def publish_instance(self, instance: Model, event: ChangeEvent, old: Optional[Dict[str, Any]] = None):
        await self.publish(instance._meta.db_table, event, serialize_row(instance), old)


change_feed = ChangeFeed()
