"""Signed-in principal tracking and ownership of live subscriptions.

A :class:`Session` belongs to one sign-in (one ``sid`` token claim). It
notifies observers when the principal changes and owns the
:class:`SubscriptionRegistry` of every live query opened on its behalf, so
that signing out can cancel all of them before the principal is cleared.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated user identity."""

    id: UUID
    email: str
    display_name: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(id=user.id, email=user.email, display_name=user.display_name)


SessionObserver = Callable[[Optional[Principal]], None]
ProfileHook = Callable[[Principal], Awaitable[None]]
Unsubscribe = Callable[[], None]


class SubscriptionRegistry:
    """Unsubscribe callables of every live subscription of one session."""

    def __init__(self) -> None:
        self._entries: List[Unsubscribe] = []

    def register(self, unsubscribe: Unsubscribe) -> None:
        self._entries.append(unsubscribe)

    def deregister(self, unsubscribe: Unsubscribe) -> None:
        try:
            self._entries.remove(unsubscribe)
        except ValueError:
            pass

    def flush(self) -> int:
        """Call every registered unsubscribe exactly once and empty the registry."""
        entries, self._entries = self._entries, []
        for unsubscribe in entries:
            try:
                unsubscribe()
            except Exception:
                logger.error("Failed to cancel subscription %r", unsubscribe, exc_info=True)
        if entries:
            logger.debug("Flushed %d subscriptions", len(entries))
        return len(entries)

    def __len__(self) -> int:
        return len(self._entries)


class Session:
    """Current principal of one sign-in plus its subscription registry."""

    def __init__(
        self,
        session_id: Optional[UUID] = None,
        ensure_profile: Optional[ProfileHook] = None,
    ) -> None:
        self.id = session_id
        self.registry = SubscriptionRegistry()
        self._principal: Optional[Principal] = None
        self._observers: Dict[object, SessionObserver] = {}
        self._ensure_profile = ensure_profile

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def is_signed_in(self) -> bool:
        return self._principal is not None

    def observe(self, callback: SessionObserver) -> Unsubscribe:
        """Call ``callback`` now and on every principal change."""
        token = object()
        self._observers[token] = callback
        callback(self._principal)

        def unsubscribe() -> None:
            self._observers.pop(token, None)

        return unsubscribe

    async def sign_in(self, principal: Principal) -> None:
        """Set the principal; make sure a profile exists on first sign-in."""
        was_anonymous = self._principal is None
        self._principal = principal
        if was_anonymous and self._ensure_profile is not None:
            try:
                await self._ensure_profile(principal)
            except Exception:
                # Sign-in never fails because of the profile check
                logger.error("Profile check failed for user %s", principal.id, exc_info=True)
        self._notify()

    def sign_out(self) -> None:
        """Cancel every live subscription, then clear the principal."""
        self.registry.flush()
        if self._principal is None:
            return
        logger.info("Session %s signed out user %s", self.id, self._principal.id)
        self._principal = None
        self._notify()

    def _notify(self) -> None:
        for callback in list(self._observers.values()):
            try:
                callback(self._principal)
            except Exception:
                logger.error("Session observer failed", exc_info=True)
