"""Live, owner-scoped queries over the task and board collections.

Every snapshot handed to ``on_snapshot`` is the full current result of the
subscription's query, never a diff. Writers call :meth:`ChangeFeed.publish`
after committing, which re-runs the queries of the affected owner.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard.core.exceptions import ForbiddenError, UnauthorizedError, ValidationError
from taskboard.core.session import Session
from taskboard.database import AsyncSessionLocal
from taskboard.localization.helpers import get_translation
from taskboard.middleware.metrics import live_subscriptions
from taskboard.models.board import Board
from taskboard.models.task import Task
from taskboard.schemas.board import BoardResponse
from taskboard.schemas.task import TaskResponse

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[Any]], Any]
ErrorCallback = Callable[[Exception], Any]


@dataclass(frozen=True)
class CollectionSpec:
    model: Any
    schema: Any
    order_by: Any
    filterable: frozenset


COLLECTIONS: Dict[str, CollectionSpec] = {
    "tasks": CollectionSpec(
        model=Task,
        schema=TaskResponse,
        order_by=Task.created_at.desc(),
        filterable=frozenset({"board_id"}),
    ),
    "boards": CollectionSpec(
        model=Board,
        schema=BoardResponse,
        order_by=Board.created_at.asc(),
        filterable=frozenset(),
    ),
}


async def _call(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """One live query. Calling the instance unsubscribes it."""

    def __init__(
        self,
        feed: "ChangeFeed",
        session: Session,
        collection: str,
        filters: Dict[str, Any],
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback],
    ) -> None:
        self.id = uuid4()
        self.feed = feed
        self.session = session
        self.collection = collection
        self.owner_id: UUID = session.principal.id
        self.filters = filters
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._closed = False
        self._closed_event = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> bool:
        principal = self.session.principal
        return not self._closed and principal is not None and principal.id == self.owner_id

    def __call__(self) -> None:
        self.cancel()

    def cancel(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.feed._discard(self)
        self.session.registry.deregister(self)
        self._closed_event.set()
        logger.debug("Subscription %s on %s cancelled", self.id, self.collection)

    async def wait_closed(self) -> None:
        await self._closed_event.wait()

    async def refresh(self) -> None:
        """Re-run the query and deliver the full result."""
        if not self.active:
            if not self._closed:
                await self._fail(UnauthorizedError(get_translation("errors.session_ended")))
            return

        try:
            items = await self.feed._fetch(self.collection, self.owner_id, self.filters)
        except SQLAlchemyError as exc:
            logger.error("Subscription %s query failed: %s", self.id, exc, exc_info=True)
            await self._fail(exc)
            return

        # The session may have signed out while the query was running
        if not self.active:
            return

        try:
            await _call(self.on_snapshot, items)
        except Exception:
            logger.error("Snapshot callback of subscription %s failed", self.id, exc_info=True)
            self.cancel()

    async def _fail(self, exc: Exception) -> None:
        """Terminal error: cancel, then report once. No retry."""
        self.cancel()
        if self.on_error is None:
            return
        try:
            await _call(self.on_error, exc)
        except Exception:
            logger.error("Error callback of subscription %s failed", self.id, exc_info=True)


class ChangeFeed:
    """Registry of live subscriptions, refreshed on every committed write."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory
        self._subscriptions: Dict[str, List[Subscription]] = {name: [] for name in COLLECTIONS}

    async def subscribe(
        self,
        session: Session,
        collection: str,
        filters: Optional[Dict[str, Any]],
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Open a live query for the session's principal and deliver the first snapshot.

        ``owner_id`` is always the signed-in principal; asking for anyone
        else's records is refused before any query runs.
        """
        spec = COLLECTIONS.get(collection)
        if spec is None:
            raise ValidationError(get_translation("errors.unknown_collection", collection=collection))

        principal = session.principal
        if principal is None:
            raise UnauthorizedError()

        filters = dict(filters or {})
        requested_owner = filters.pop("owner_id", None)
        if requested_owner is not None and str(requested_owner) != str(principal.id):
            raise ForbiddenError(get_translation("errors.cross_owner_read"))
        for field in filters:
            if field not in spec.filterable:
                raise ValidationError(get_translation("errors.unsupported_filter", field=field))
            value = filters[field]
            if value is not None and not isinstance(value, UUID):
                try:
                    filters[field] = UUID(str(value))
                except ValueError:
                    raise ValidationError(get_translation("errors.invalid_filter_value", field=field))

        subscription = Subscription(self, session, collection, filters, on_snapshot, on_error)
        self._subscriptions[collection].append(subscription)
        session.registry.register(subscription)
        live_subscriptions.labels(collection).inc()
        logger.debug(
            "Subscription %s opened on %s for user %s with %s",
            subscription.id,
            collection,
            principal.id,
            filters,
        )

        await subscription.refresh()
        return subscription

    async def publish(self, collection: str, owner_id: UUID) -> None:
        """Deliver fresh snapshots to every subscription of ``owner_id`` on ``collection``."""
        for subscription in list(self._subscriptions.get(collection, [])):
            if subscription.owner_id == owner_id and not subscription.closed:
                await subscription.refresh()

    def count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self._subscriptions.get(collection, []))
        return sum(len(items) for items in self._subscriptions.values())

    def _discard(self, subscription: Subscription) -> None:
        items = self._subscriptions.get(subscription.collection, [])
        if subscription in items:
            items.remove(subscription)
            live_subscriptions.labels(subscription.collection).dec()

    async def _fetch(self, collection: str, owner_id: UUID, filters: Dict[str, Any]) -> List[Any]:
        spec = COLLECTIONS[collection]
        model = spec.model
        query = select(model).where(model.owner_id == owner_id)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        query = query.order_by(spec.order_by)

        db: AsyncSession
        async with self._session_factory() as db:
            result = await db.execute(query)
            return [spec.schema.model_validate(obj) for obj in result.scalars().all()]


change_feed = ChangeFeed(AsyncSessionLocal)
