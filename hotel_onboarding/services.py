"""
Service Wiring

Builds the onboarding engines around one session factory and the
configured collaborators. The notifier is Kafka when
``KAFKA_NOTIFICATIONS_ENABLED`` is set, the structured log otherwise.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

import structlog
from prometheus_client import start_http_server
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hotel_onboarding.config import Settings, get_settings
from hotel_onboarding.config.logging import configure_logging
from hotel_onboarding.database.connection import close_database, get_session_factory, init_database
from hotel_onboarding.integration.engine import DataIntegrationEngine
from hotel_onboarding.integration.notifiers import KafkaNotifier, LoggingNotifier
from hotel_onboarding.interfaces import (
    AllowAllPermissionChecker,
    AuditRecorder,
    LoggingAuditRecorder,
    Notifier,
    PermissionChecker,
)
from hotel_onboarding.onboarding.session_engine import OnboardingSessionEngine
from hotel_onboarding.quality.scoring import QualityScoringEngine

logger = structlog.get_logger(__name__)


@dataclass
class OnboardingServices:
    sessions: OnboardingSessionEngine
    integration: DataIntegrationEngine
    scoring: QualityScoringEngine
    notifier: Notifier


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    permissions: PermissionChecker,
    notifier: Notifier,
    audit: Optional[AuditRecorder] = None,
    settings: Optional[Settings] = None,
) -> OnboardingServices:
    """Assemble the engines over an existing session factory"""
    settings = settings or get_settings()
    scoring = QualityScoringEngine()
    integration = DataIntegrationEngine(
        session_factory,
        notifier=notifier,
        scoring=scoring,
        config=settings.onboarding,
    )
    sessions = OnboardingSessionEngine(
        session_factory,
        permissions=permissions,
        integration=integration,
        audit=audit,
        config=settings.onboarding,
    )
    return OnboardingServices(
        sessions=sessions,
        integration=integration,
        scoring=scoring,
        notifier=notifier,
    )


@asynccontextmanager
async def onboarding_services(
    permissions: Optional[PermissionChecker] = None,
    audit: Optional[AuditRecorder] = None,
    serve_metrics: bool = False,
) -> AsyncGenerator[OnboardingServices, None]:
    """
    Initialize the database and notifier, yield wired engines, shut down.

    Without a permission checker every action is allowed, which only suits
    trusted batch callers.

    Example:
        async with onboarding_services(permissions=rbac) as services:
            await services.sessions.create_session(hotel_id, user_id)
    """
    settings = get_settings()
    configure_logging()

    logger.info("Starting hotel onboarding services", app=settings.app_name, env=settings.app_env)
    if serve_metrics:
        start_http_server(settings.monitoring.prometheus_port)
        logger.info("Metrics server started", port=settings.monitoring.prometheus_port)

    await init_database()

    kafka: Optional[KafkaNotifier] = None
    try:
        if settings.kafka.notifications_enabled:
            kafka = KafkaNotifier(settings.kafka)
            await kafka.start()
            notifier: Notifier = kafka
        else:
            notifier = LoggingNotifier()

        yield build_services(
            get_session_factory(),
            permissions=permissions or AllowAllPermissionChecker(),
            notifier=notifier,
            audit=audit or LoggingAuditRecorder(),
            settings=settings,
        )
    finally:
        logger.info("Shutting down hotel onboarding services")
        if kafka is not None:
            await kafka.stop()
        await close_database()
