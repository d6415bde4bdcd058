"""Credentials-invalidated notifications, passed explicitly to whoever must react"""

import logging
from enum import Enum
from typing import Callable

from merchant_pos.domain.observable import Listeners, Subscription

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    TOKEN_EXPIRED_OR_INVALID = "token_expired_or_invalid"


class AuthEventChannel:
    """
    Non-replaying broadcast of authentication events.

    One instance is created per logged-in session and handed to the HTTP
    clients (publishers) and the navigation layer (subscriber). Events
    published with no subscriber are dropped.
    """

    def __init__(self) -> None:
        self._listeners: Listeners[AuthEvent] = Listeners()

    def subscribe(self, callback: Callable[[AuthEvent], None]) -> Subscription:
        return self._listeners.add(callback)

    def publish(self, event: AuthEvent) -> None:
        logger.info("Auth event published", extra={"auth_event": event.value})
        self._listeners.notify(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)
