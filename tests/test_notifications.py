import json
import unittest
from unittest import mock

from pika.exceptions import AMQPConnectionError

from campus_manager import NotificationHub, RabbitMQPublisher
from campus_manager.notifications import EXCHANGE_NAME


class TestNotificationHub(unittest.TestCase):
    def test_fans_out_to_every_subscriber(self) -> None:
        hub = NotificationHub()
        first: list[tuple[str, dict]] = []
        second: list[tuple[str, dict]] = []
        hub.subscribe(lambda topic, payload: first.append((topic, payload)))
        hub.subscribe(lambda topic, payload: second.append((topic, payload)))

        hub.publish("room-booked", {"room_id": "A101"})

        self.assertEqual(first, [("room-booked", {"room_id": "A101"})])
        self.assertEqual(second, first)

    def test_topic_filter(self) -> None:
        hub = NotificationHub()
        received: list[str] = []
        hub.subscribe(lambda topic, payload: received.append(topic), topics=["resource-reserved"])

        hub.publish("room-booked", {})
        hub.publish("resource-reserved", {})

        self.assertEqual(received, ["resource-reserved"])

    def test_unsubscribe(self) -> None:
        hub = NotificationHub()
        received: list[str] = []
        subscription_id = hub.subscribe(lambda topic, payload: received.append(topic))

        self.assertTrue(hub.unsubscribe(subscription_id))
        self.assertFalse(hub.unsubscribe(subscription_id))
        hub.publish("room-booked", {})

        self.assertEqual(received, [])
        self.assertEqual(hub.subscriber_count, 0)

    def test_failing_subscriber_is_isolated(self) -> None:
        hub = NotificationHub()
        received: list[str] = []

        def broken(topic: str, payload: dict) -> None:
            raise RuntimeError("subscriber crashed")

        hub.subscribe(broken)
        hub.subscribe(lambda topic, payload: received.append(topic))

        with self.assertLogs("campus_manager.notifications", level="ERROR"):
            hub.publish("room-booked", {})

        self.assertEqual(received, ["room-booked"])


class TestRabbitMQPublisher(unittest.TestCase):
    def test_publishes_json_envelope_on_fanout_exchange(self) -> None:
        with mock.patch("campus_manager.notifications.pika.BlockingConnection") as connection_cls:
            channel = connection_cls.return_value.channel.return_value
            RabbitMQPublisher("rabbitmq").publish("resource-reserved", {"resource_id": "pc-001"})

        channel.exchange_declare.assert_called_once_with(exchange=EXCHANGE_NAME, exchange_type="fanout", durable=True)
        body = channel.basic_publish.call_args.kwargs["body"]
        self.assertEqual(json.loads(body), {"type": "resource-reserved", "payload": {"resource_id": "pc-001"}})
        connection_cls.return_value.close.assert_called_once()

    def test_connection_is_bounded_by_timeout(self) -> None:
        with mock.patch("campus_manager.notifications.pika.ConnectionParameters") as parameters_cls:
            with mock.patch("campus_manager.notifications.pika.BlockingConnection") as connection_cls:
                RabbitMQPublisher("rabbitmq", timeout=1.5).publish("room-booked", {})

        parameters_cls.assert_called_once_with(
            host="rabbitmq",
            connection_attempts=1,
            socket_timeout=1.5,
            blocked_connection_timeout=1.5,
        )
        connection_cls.assert_called_once_with(parameters_cls.return_value)

    def test_unreachable_broker_is_logged_not_raised(self) -> None:
        with mock.patch(
            "campus_manager.notifications.pika.BlockingConnection",
            side_effect=AMQPConnectionError("refused"),
        ):
            with self.assertLogs("campus_manager.notifications", level="WARNING"):
                RabbitMQPublisher("rabbitmq").publish("room-booked", {})


if __name__ == "__main__":
    unittest.main()
