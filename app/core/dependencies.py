"""
Core dependencies for FastAPI routes.

Wires the simulator service from settings. Every request (and every
Celery run) gets its own service and its own network clients; nothing is
shared across invocations.
"""

from typing import AsyncIterator, Optional

from app.config.settings import Settings, get_settings
from app.infrastructure.state_gateway import StateStoreGateway
from app.integrations.market_data import DexScreenerClient, GeckoTerminalClient, PriceOracle
from app.integrations.notifications import TelegramNotifier
from app.integrations.storage import TelegramDocumentStore
from app.integrations.telegram import TelegramBotClient
from app.modules.positions.service import SimulatorService
from app.shared.exceptions import ConfigurationError


def build_simulator_service(settings: Optional[Settings] = None) -> SimulatorService:
    """
    Build a SimulatorService backed by Telegram and the public DEX price APIs.

    Raises:
        ConfigurationError: If TELEGRAM_BOT_TOKEN is not set
    """
    settings = settings or get_settings()
    if not settings.TELEGRAM_BOT_TOKEN:
        raise ConfigurationError("Missing TELEGRAM_BOT_TOKEN")

    bot = TelegramBotClient(settings.TELEGRAM_BOT_TOKEN, timeout=settings.HTTP_TIMEOUT_SECONDS)
    store = TelegramDocumentStore(bot, settings.SIMULATOR_CHANNEL_ID, settings.STATE_FILE_NAME)
    gateway = StateStoreGateway(
        store,
        file_name=settings.STATE_FILE_NAME,
        history_limit=settings.HISTORY_LIMIT,
        max_attempts=settings.SAVE_MAX_ATTEMPTS,
    )
    oracle = PriceOracle(
        DexScreenerClient(timeout=settings.HTTP_TIMEOUT_SECONDS),
        GeckoTerminalClient(timeout=settings.HTTP_TIMEOUT_SECONDS),
        chunk_size=settings.PRICE_CHUNK_SIZE,
        chunk_delay=settings.PRICE_CHUNK_DELAY_SECONDS,
    )
    notifier = TelegramNotifier(
        bot,
        chat_id=settings.SIMULATOR_CHANNEL_ID,
        forward_chat_id=settings.SIGNAL_FORWARD_CHAT_ID,
    )
    return SimulatorService(
        gateway,
        oracle=oracle,
        notifier=notifier,
        poll_iterations=settings.POLL_ITERATIONS,
        poll_delay_seconds=settings.POLL_DELAY_SECONDS,
    )


async def get_simulator_service() -> AsyncIterator[SimulatorService]:
    """
    FastAPI dependency yielding a request-scoped SimulatorService.

    Example:
        @router.get("/stats")
        async def stats(service: SimulatorService = Depends(get_simulator_service)):
            ...
    """
    service = build_simulator_service()
    try:
        yield service
    finally:
        await service.close()
