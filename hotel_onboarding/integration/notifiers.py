"""
System Update Notifiers

Implementations of the Notifier interface:
- LoggingNotifier: writes updates to the structured log
- KafkaNotifier: publishes updates to the system-updates topic for search,
  booking and analytics consumers
- RecordingNotifier: keeps updates in memory, for previews and tests
"""

import asyncio
import json
from typing import List, Optional

import structlog
from aiokafka import AIOKafkaProducer
from prometheus_client import Counter, Histogram

from hotel_onboarding.config import get_settings
from hotel_onboarding.config.settings import KafkaSettings
from hotel_onboarding.interfaces import SystemUpdate

logger = structlog.get_logger(__name__)
settings = get_settings()


# =============================================================================
# METRICS
# =============================================================================

UPDATES_PUBLISHED = Counter(
    "onboarding_system_updates_published_total",
    "System updates published",
    ["type", "status"],
)

PUBLISH_TIME = Histogram(
    "onboarding_system_update_publish_seconds",
    "Time spent publishing a system update",
    ["type"],
)


class LoggingNotifier:
    """Writes system updates to the log"""

    async def notify(self, update: SystemUpdate) -> None:
        logger.info(
            "System update",
            update_type=update.type.value,
            entity_id=update.entity_id,
            timestamp=update.timestamp.isoformat(),
        )
        UPDATES_PUBLISHED.labels(type=update.type.value, status="logged").inc()


class RecordingNotifier:
    """Collects system updates in memory"""

    def __init__(self):
        self.updates: List[SystemUpdate] = []

    async def notify(self, update: SystemUpdate) -> None:
        self.updates.append(update)


class KafkaNotifier:
    """
    Publishes system updates to Kafka.

    Messages are JSON documents keyed by entity id so all updates for one
    hotel land on the same partition, in order.

    Example:
        notifier = KafkaNotifier()
        await notifier.start()
        await notifier.notify(update)
        await notifier.stop()
    """

    def __init__(self, config: Optional[KafkaSettings] = None):
        self.config = config or settings.kafka
        self._producer: Optional[AIOKafkaProducer] = None

    async def _create_producer(self) -> AIOKafkaProducer:
        producer = AIOKafkaProducer(
            bootstrap_servers=self.config.bootstrap_servers,
            client_id=self.config.client_id,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8") if k else None,
        )
        return producer

    async def start(self) -> None:
        if self._producer is not None:
            return
        producer = await self._create_producer()
        await producer.start()
        self._producer = producer
        logger.info(
            "Kafka notifier started",
            bootstrap_servers=self.config.bootstrap_servers,
            topic=self.config.topics_system_updates,
        )

    async def stop(self) -> None:
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka notifier stopped")

    async def notify(self, update: SystemUpdate) -> None:
        """
        Publish one update.

        Raises:
            RuntimeError: notifier not started
            Exception: any producer error; callers wrap this with notify_safely
        """
        if self._producer is None:
            raise RuntimeError("Kafka notifier not started. Call start() first.")

        with PUBLISH_TIME.labels(type=update.type.value).time():
            try:
                await asyncio.wait_for(
                    self._producer.send_and_wait(
                        self.config.topics_system_updates,
                        value=update.to_dict(),
                        key=update.entity_id,
                    ),
                    timeout=self.config.send_timeout_seconds,
                )
            except Exception:
                UPDATES_PUBLISHED.labels(type=update.type.value, status="failed").inc()
                raise

        UPDATES_PUBLISHED.labels(type=update.type.value, status="published").inc()
        logger.debug("System update published", update_type=update.type.value, entity_id=update.entity_id)
