import json
from typing import Optional

from confluent_kafka import Producer
from loguru import logger

from agrohaat.core.config import settings
from agrohaat.models.notification import Notification


class PushDispatcher:
    """Hands notifications to the push delivery service through Kafka"""

    def __init__(self, topic: Optional[str] = None):
        self.topic = topic or settings.KAFKA_TOPIC_NOTIFICATIONS
        self._producer: Optional[Producer] = None

    @staticmethod
    def get_producer_config() -> dict:
        return {
            'bootstrap.servers': settings.KAFKA_BOOTSTRAP_SERVERS,
            'message.max.bytes': 1000000,
            'queue.buffering.max.messages': 100000
        }

    @property
    def producer(self) -> Producer:
        if self._producer is None:
            self._producer = Producer(self.get_producer_config())
        return self._producer

    def delivery_report(self, err, msg):
        if err is not None:
            logger.error(f"Push message delivery failed: {err}")
        else:
            logger.debug(f"Push message delivered to {msg.topic()} [{msg.partition()}]")

    def dispatch(self, notification: Notification):
        payload = {
            "notification_id": str(notification.id),
            "user_id": str(notification.user_id),
            "type": notification.notification_type.value,
            "title": notification.title,
            "message": notification.message,
            "metadata": notification.metadata,
        }
        self.producer.produce(
            topic=self.topic,
            key=str(notification.user_id),
            value=json.dumps(payload, ensure_ascii=False),
            callback=self.delivery_report
        )
        self.producer.poll(0)

    def flush(self):
        if self._producer is not None:
            self._producer.flush()


push_dispatcher = PushDispatcher()
