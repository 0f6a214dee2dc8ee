"""
RepackHub — Identity provider

An explicit value object plus an observer. Collections receive the provider
at construction and subscribe to it. Authentication itself happens elsewhere;
whoever owns the session publishes the resulting Identity here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)

IdentityListener = Callable[["Identity"], None]


@dataclass(frozen=True)
class Identity:
    is_authenticated: bool = False
    identity_id: str | None = None

    @classmethod
    def anonymous(cls) -> Identity:
        return cls()

    @classmethod
    def authenticated(cls, identity_id: str) -> Identity:
        return cls(is_authenticated=True, identity_id=identity_id)

    @property
    def owner(self) -> str | None:
        """The owner id rows are scoped to, or None when signed out."""
        if self.is_authenticated and self.identity_id:
            return self.identity_id
        return None


class IdentityProvider:
    """
    Holds the current Identity and notifies subscribers synchronously on change.

    Listeners are called in subscription order. A listener added while the
    provider is already authenticated is called immediately.
    """

    def __init__(self, initial: Identity | None = None) -> None:
        self._current = initial or Identity.anonymous()
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> Identity:
        return self._current

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, identity: Identity) -> None:
        if identity == self._current:
            return
        logger.info(
            "identity_changed",
            is_authenticated=identity.is_authenticated,
            identity_id=identity.identity_id,
            listeners=len(self._listeners),
        )
        self._current = identity
        for listener in list(self._listeners):
            listener(identity)

    def sign_in(self, identity_id: str) -> None:
        self.publish(Identity.authenticated(identity_id))

    def sign_out(self) -> None:
        self.publish(Identity.anonymous())
