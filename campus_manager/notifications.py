from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol
import json
import logging
import threading
from uuid import uuid4

import pika
from pika.exceptions import AMQPError

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, dict[str, Any]], None]

EXCHANGE_NAME = "campus-events"
# Seconds; publishing runs inside the request.
DEFAULT_TIMEOUT = 2.0


class Publisher(Protocol):
    def publish(self, topic: str, payload: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class Subscription:
    subscription_id: str
    callback: Subscriber
    topics: frozenset[str] | None = None

    def wants(self, topic: str) -> bool:
        return self.topics is None or topic in self.topics


class NotificationHub:
    """In-process fan-out of change events to registered subscribers.

    Delivery is best-effort: a failing subscriber is logged and skipped, and
    never affects the publisher or the other subscribers.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber, topics: Iterable[str] | None = None) -> str:
        subscription = Subscription(
            subscription_id=str(uuid4()),
            callback=callback,
            topics=frozenset(topics) if topics is not None else None,
        )
        with self._lock:
            self._subscriptions[subscription.subscription_id] = subscription
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        with self._lock:
            return self._subscriptions.pop(subscription_id, None) is not None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        with self._lock:
            targets = [subscription for subscription in self._subscriptions.values() if subscription.wants(topic)]

        for subscription in targets:
            try:
                subscription.callback(topic, payload)
            except Exception:
                logger.exception("Subscriber %s failed on topic %s", subscription.subscription_id, topic)


class RabbitMQPublisher:
    """Broadcast change events on a RabbitMQ fanout exchange."""

    def __init__(self, host: str, exchange: str = EXCHANGE_NAME, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.host = host
        self.exchange = exchange
        self.timeout = timeout

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        message = {"type": topic, "payload": payload}
        try:
            parameters = pika.ConnectionParameters(
                host=self.host,
                connection_attempts=1,
                socket_timeout=self.timeout,
                blocked_connection_timeout=self.timeout,
            )
            connection = pika.BlockingConnection(parameters)
        except (AMQPError, OSError):
            logger.warning("RabbitMQ unreachable at %s, dropping %s", self.host, topic, exc_info=True)
            return

        try:
            channel = connection.channel()
            channel.exchange_declare(exchange=self.exchange, exchange_type="fanout", durable=True)
            channel.basic_publish(exchange=self.exchange, routing_key="", body=json.dumps(message, default=str))
            logger.debug("Published %s to exchange %s", topic, self.exchange)
        except (AMQPError, OSError):
            logger.warning("Failed to publish %s to RabbitMQ", topic, exc_info=True)
        finally:
            try:
                connection.close()
            except AMQPError:
                logger.debug("RabbitMQ connection already closed")
