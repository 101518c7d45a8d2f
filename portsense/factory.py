"""Wire the full monitoring pipeline from settings."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from portsense.alerts.engine import RuleEngine
from portsense.alerts.service import AlertService
from portsense.core.config import Settings
from portsense.enrich.base import TextGenerator
from portsense.enrich.factory import create_text_generator
from portsense.monitoring.cycle import MonitoringCycle
from portsense.monitoring.scheduler import MonitoringScheduler
from portsense.monitoring.service import MonitoringService
from portsense.notify.dispatcher import NotificationDispatcher
from portsense.notify.factory import create_dispatcher
from portsense.realtime.hub import BroadcastHub
from portsense.store.base import EntityStore
from portsense.store.memory import InMemoryEntityStore
from portsense.tracking.base import TrackingProvider
from portsense.tracking.factory import create_tracking_provider
from portsense.tracking.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


@dataclass
class Pipeline:
    """Every long-lived component of one running deployment."""

    settings: Settings
    store: EntityStore
    provider: TrackingProvider
    engine: RuleEngine
    text_generator: TextGenerator
    alert_service: AlertService
    dispatcher: NotificationDispatcher
    hub: BroadcastHub
    cycle: MonitoringCycle
    service: MonitoringService
    scheduler: MonitoringScheduler

    async def start(self, schedule: bool = True) -> None:
        await self.provider.connect()
        if schedule:
            await self.scheduler.start()
        logger.info("pipeline_started", scheduled=schedule)

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.cycle.drain()
        await self.hub.close()
        for name, closer in (
            ("dispatcher", self.dispatcher.close),
            ("text_generator", self.text_generator.close),
            ("provider", self.provider.close),
        ):
            try:
                await closer()
            except Exception:
                logger.exception("pipeline_close_error", component=name)
        logger.info("pipeline_closed")


def create_pipeline(
    settings: Settings,
    store: EntityStore | None = None,
    provider: TrackingProvider | None = None,
) -> Pipeline:
    """Build and connect every stage of the pipeline.

    The rule path and the broadcast path consume ChangeEvents independently;
    newly persisted alerts flow on to the dispatcher.
    """
    store = store or InMemoryEntityStore()
    provider = provider or create_tracking_provider(
        settings.tracking,
        timeout_secs=settings.monitoring.provider_timeout_secs,
    )
    limiter = RateLimiter(
        requests_per_sec=settings.monitoring.requests_per_sec,
        burst=settings.monitoring.burst,
    )

    engine = RuleEngine(disabled=settings.rules.disabled)
    text_generator = create_text_generator(settings.enrichment)
    alert_service = AlertService(
        store,
        engine,
        text_generator=text_generator,
        enrichment_timeout_secs=settings.enrichment.timeout_secs,
    )
    dispatcher = create_dispatcher(settings.notifications, store)
    alert_service.on_alert(dispatcher.dispatch)

    hub = BroadcastHub(queue_size=settings.realtime.queue_size)

    cycle = MonitoringCycle(
        store,
        provider,
        config=settings.monitoring,
        rate_limiter=limiter,
    )
    cycle.on_change(alert_service.on_change_event)
    cycle.on_change(hub.on_change_event)

    service = MonitoringService(cycle, dispatcher, store, config=settings.monitoring)
    scheduler = MonitoringScheduler(service, interval_secs=settings.monitoring.interval_secs)

    return Pipeline(
        settings=settings,
        store=store,
        provider=provider,
        engine=engine,
        text_generator=text_generator,
        alert_service=alert_service,
        dispatcher=dispatcher,
        hub=hub,
        cycle=cycle,
        service=service,
        scheduler=scheduler,
    )
