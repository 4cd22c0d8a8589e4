"""Tests for container wiring."""

import asyncio

from portrait_analysis.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.worker.concurrency == settings.worker_concurrency
    assert container.notification_bus.channel == "bot_notifications"
    assert container.admission_service.default_cost == 1
    assert container.chat_relay.bus is container.notification_bus
    asyncio.run(container.close_resources())
