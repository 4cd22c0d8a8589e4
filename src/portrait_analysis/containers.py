"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from supabase import create_client

from portrait_analysis.adapters.openai_analysis_client import OpenAIAnalysisClient
from portrait_analysis.adapters.redis_broker import RedisMessageBroker
from portrait_analysis.adapters.redis_job_queue import RedisJobQueue
from portrait_analysis.adapters.supabase_analysis_repository import (
    SupabaseAnalysisRepository,
)
from portrait_analysis.adapters.supabase_ledger_repository import (
    SupabaseLedgerRepository,
)
from portrait_analysis.adapters.supabase_prompt_repository import (
    SupabasePromptRepository,
)
from portrait_analysis.adapters.supabase_user_repository import SupabaseUserRepository
from portrait_analysis.adapters.telegram_client import (
    HttpxTelegramClient,
    TelegramClient,
)
from portrait_analysis.adapters.telegram_file_client import HttpxTelegramFileClient
from portrait_analysis.config import Settings
from portrait_analysis.services.admission import AdmissionService
from portrait_analysis.services.cache import TTLCache
from portrait_analysis.services.chat_relay import ChatRelay
from portrait_analysis.services.compositor import ImageCompositor
from portrait_analysis.services.funnel import FunnelBroadcaster
from portrait_analysis.services.gateway import AnalysisGateway
from portrait_analysis.services.heartbeat import TypingHeartbeat
from portrait_analysis.services.ledger import CreditLedger
from portrait_analysis.services.media import MediaFetcher
from portrait_analysis.services.notifications import NotificationBus
from portrait_analysis.services.orchestrator import AnalysisOrchestrator
from portrait_analysis.services.prompts import PromptService
from portrait_analysis.services.worker import AnalysisWorker


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    telegram_client: TelegramClient
    notification_bus: NotificationBus
    ledger: CreditLedger
    admission_service: AdmissionService
    funnel_broadcaster: FunnelBroadcaster
    orchestrator: AnalysisOrchestrator
    worker: AnalysisWorker
    chat_relay: ChatRelay
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    analysis_repository = SupabaseAnalysisRepository(supabase_client)
    user_repository = SupabaseUserRepository(supabase_client)
    ledger = CreditLedger(SupabaseLedgerRepository(supabase_client))
    prompt_service = PromptService(
        repository=SupabasePromptRepository(supabase_client),
        cache=TTLCache(),
        ttl_seconds=resolved_settings.prompt_cache_ttl_seconds,
    )

    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    telegram_file_client = HttpxTelegramFileClient.create(
        resolved_settings.telegram_bot_token
    )
    broker = RedisMessageBroker.create(resolved_settings.redis_url)
    notification_bus = NotificationBus(
        broker=broker, channel=resolved_settings.notification_channel
    )
    job_queue = RedisJobQueue.create(
        resolved_settings.redis_url,
        stream=resolved_settings.analysis_stream,
        group=resolved_settings.analysis_group,
        consumer=resolved_settings.analysis_consumer,
        claim_idle_ms=resolved_settings.analysis_claim_idle_ms,
        claim_interval_seconds=resolved_settings.analysis_claim_interval_seconds,
    )

    gateway = AnalysisGateway(
        client=OpenAIAnalysisClient.create(resolved_settings.openai_api_key),
        prompts=prompt_service,
        model=resolved_settings.openai_model,
        summary_model=resolved_settings.openai_summary_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        min_response_length=resolved_settings.min_analysis_length,
    )
    orchestrator = AnalysisOrchestrator(
        analyses=analysis_repository,
        users=user_repository,
        ledger=ledger,
        media=MediaFetcher(
            file_client=telegram_file_client,
            telegram_client=telegram_client,
            upload_dir=Path(resolved_settings.upload_dir),
        ),
        compositor=ImageCompositor(Path(resolved_settings.backgrounds_dir)),
        gateway=gateway,
        bus=notification_bus,
        heartbeat_factory=partial(
            TypingHeartbeat,
            telegram_client,
            interval_seconds=resolved_settings.typing_interval_seconds,
        ),
    )
    worker = AnalysisWorker(
        queue=job_queue,
        orchestrator=orchestrator,
        concurrency=resolved_settings.worker_concurrency,
        max_attempts=resolved_settings.job_max_attempts,
        backoff_seconds=resolved_settings.job_backoff_seconds,
    )
    admission_service = AdmissionService(
        ledger=ledger,
        analyses=analysis_repository,
        queue=job_queue,
        default_cost=resolved_settings.default_analysis_cost,
    )

    async def close_resources() -> None:
        await telegram_client.close()
        await telegram_file_client.close()
        await broker.close()
        await job_queue.close()

    return AppContainer(
        settings=resolved_settings,
        telegram_client=telegram_client,
        notification_bus=notification_bus,
        ledger=ledger,
        admission_service=admission_service,
        funnel_broadcaster=FunnelBroadcaster(user_repository, notification_bus),
        orchestrator=orchestrator,
        worker=worker,
        chat_relay=ChatRelay(notification_bus, telegram_client),
        close_resources=close_resources,
    )
