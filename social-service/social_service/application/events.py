"""
Domain events and the in-process event pipeline

Each command emits one event after its fact/counter writes have completed.
Handlers are independent: an isolated handler that fails is logged and queued
for FailedDeliveryRetrier, and never fails the command that published the event.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)


class EventName:
    """Names of the events emitted by the social core"""

    FOLLOW_CREATED = "follow.created"
    FOLLOW_ACCEPTED = "follow.accepted"
    FOLLOW_REJECTED = "follow.rejected"
    FOLLOW_REMOVED = "follow.removed"
    FACT_INSERTED = "fact.inserted"
    FACT_DELETED = "fact.deleted"
    TAG_CREATED = "tag.created"
    TAG_REMOVED = "tag.removed"

    ALL = (
        FOLLOW_CREATED,
        FOLLOW_ACCEPTED,
        FOLLOW_REJECTED,
        FOLLOW_REMOVED,
        FACT_INSERTED,
        FACT_DELETED,
        TAG_CREATED,
        TAG_REMOVED,
    )


@dataclass(frozen=True)
class DomainEvent:
    """
    A social action that already happened

    `subject_id` is the profile the action is aimed at (followed profile,
    content owner, tagged profile); `data` carries reference ids.
    """

    name: str
    actor_id: int
    subject_id: int
    data: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.name,
            "actor_id": self.actor_id,
            "subject_id": self.subject_id,
            "data": self.data,
            "timestamp": self.occurred_at.isoformat(),
        }


Handler = Callable[[DomainEvent], Awaitable[Any]]


@dataclass
class _Subscription:
    handler: Handler
    isolated: bool


@dataclass
class FailedDelivery:
    """An isolated handler invocation that raised"""
    event: DomainEvent
    handler: Handler
    error: str
    attempts: int = 1


class EventBus:
    """Synchronous fan-out of domain events to subscribed handlers"""

    def __init__(self, max_failed: Optional[int] = None):
        self._subscriptions: Dict[str, List[_Subscription]] = {}
        self.failed: List[FailedDelivery] = []
        self.max_failed = max_failed
        self.dropped = 0

    def subscribe(self, event_name: str, handler: Handler, isolated: bool = True):
        """
        Register a handler for an event name

        Args:
            event_name: Event to react to, "*" for every event
            handler: Coroutine function receiving the event
            isolated: If True, handler errors are logged and kept for retry
                instead of propagating to the publisher
        """
        self._subscriptions.setdefault(event_name, []).append(
            _Subscription(handler=handler, isolated=isolated)
        )

    def handlers_for(self, event_name: str) -> List[_Subscription]:
        return self._subscriptions.get(event_name, []) + self._subscriptions.get("*", [])

    def _keep_failed(self, delivery: FailedDelivery):
        """Queue a delivery for retry, dropping the oldest once the queue is full"""
        self.failed.append(delivery)
        if self.max_failed is not None and len(self.failed) > self.max_failed:
            dropped = self.failed.pop(0)
            self.dropped += 1
            logger.warning(
                f"Failed delivery queue full, dropping {dropped.event.name} for "
                f"{_handler_name(dropped.handler)}"
            )

    async def publish(self, event: DomainEvent):
        """Deliver an event to every handler subscribed to it"""
        logger.debug(f"Publishing {event.name}: actor={event.actor_id} subject={event.subject_id}")

        for subscription in self.handlers_for(event.name):
            if not subscription.isolated:
                await subscription.handler(event)
                continue

            try:
                await subscription.handler(event)
            except Exception as e:
                logger.error(
                    f"Handler {_handler_name(subscription.handler)} failed for {event.name}: {e}"
                )
                self._keep_failed(
                    FailedDelivery(event=event, handler=subscription.handler, error=str(e))
                )

    async def retry_failed(self, max_attempts: Optional[int] = None) -> int:
        """
        Re-deliver failed isolated handler invocations

        Args:
            max_attempts: Drop deliveries that already failed this many times

        Returns:
            Number of deliveries that succeeded on this pass
        """
        pending, self.failed = self.failed, []
        delivered = 0

        for delivery in pending:
            try:
                await delivery.handler(delivery.event)
                delivered += 1
            except Exception as e:
                delivery.attempts += 1
                delivery.error = str(e)
                if max_attempts is not None and delivery.attempts >= max_attempts:
                    logger.error(
                        f"Giving up on {delivery.event.name} for "
                        f"{_handler_name(delivery.handler)} after {delivery.attempts} attempts"
                    )
                    continue
                self._keep_failed(delivery)

        if delivered:
            logger.info(f"Re-delivered {delivered} failed event deliveries")
        return delivered


class FailedDeliveryRetrier:
    """Background task that periodically re-delivers the bus's failed deliveries"""

    def __init__(self, bus: EventBus, interval: float, max_attempts: Optional[int] = None):
        self.bus = bus
        self.interval = interval
        self.max_attempts = max_attempts
        self.running = False
        self.task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the retry loop"""
        if self.task:
            return

        self.running = True
        self.task = asyncio.create_task(self._retry_loop())
        logger.info(f"Failed delivery retrier started (every {self.interval}s)")

    async def stop(self):
        """Stop the retry loop"""
        self.running = False

        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
            logger.info("Failed delivery retrier stopped")

    async def _retry_loop(self):
        try:
            while self.running:
                await asyncio.sleep(self.interval)
                if not self.bus.failed:
                    continue

                try:
                    await self.bus.retry_failed(max_attempts=self.max_attempts)
                except Exception as e:
                    logger.error(f"Error retrying failed deliveries: {e}")

        except asyncio.CancelledError:
            logger.info("Failed delivery retrier task cancelled")
            raise


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
