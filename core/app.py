import asyncio
import signal
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from dotenv import load_dotenv

from core.fetcher import UnifiedDataFetcher
from core.invalidation import CacheInvalidationCoordinator
from core.query_cache import QueryCache
from core.scoring.cache import ScoreCache
from core.scoring.service import GameScoreService
from core.tenant import TenantContextManager
from runtime import version as runtime_version
from services.api.client import ApiClient
from shared.config.client import ClientConfig, load_client_config
from shared.logging.logger import get_logger
from shared.notifications.sink import BufferedNotificationSink, LoggingNotificationSink
from shared.storage.tenant_store import TenantStore

log = get_logger("core.app")


@dataclass
class Runtime:
    """One instance of each shared service, built once per process."""

    config: ClientConfig
    api: ApiClient
    store: TenantStore
    tenant: TenantContextManager
    query_cache: QueryCache
    score_cache: ScoreCache
    fetcher: UnifiedDataFetcher
    invalidation: CacheInvalidationCoordinator
    notifications: BufferedNotificationSink
    scores: GameScoreService

    async def aclose(self) -> None:
        self.tenant.shutdown()
        await self.api.aclose()


def build_runtime(
    config: Optional[ClientConfig] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
) -> Runtime:
    config = config or load_client_config()

    api = ApiClient(config.api_base_url, timeout=config.request_timeout_seconds, transport=transport)
    store = TenantStore(config.state_dir)
    tenant = TenantContextManager(
        store=store,
        api_client=api,
        fallback_club_id=config.fallback_club_id,
        team_debounce_seconds=config.team_debounce_seconds,
    )

    query_cache = QueryCache(clock=clock)
    score_cache = ScoreCache(ttl_seconds=config.score_cache_ttl_seconds, clock=clock)
    fetcher = UnifiedDataFetcher(api, query_cache)
    notifications = BufferedNotificationSink(forward=LoggingNotificationSink())

    return Runtime(
        config=config,
        api=api,
        store=store,
        tenant=tenant,
        query_cache=query_cache,
        score_cache=score_cache,
        fetcher=fetcher,
        invalidation=CacheInvalidationCoordinator(query_cache, score_cache),
        notifications=notifications,
        scores=GameScoreService(
            tenant=tenant,
            fetcher=fetcher,
            score_cache=score_cache,
            notifications=notifications,
        ),
    )


async def main(stop_event: asyncio.Event):
    # --------------------------------------------------
    # ENV
    # --------------------------------------------------
    load_dotenv()
    log.info("Environment variables loaded")
    log.info(f"{runtime_version.as_string()} booting")

    runtime = build_runtime()
    log.info(f"API base URL: {runtime.config.api_base_url}")

    # --------------------------------------------------
    # TENANT CONTEXT
    # --------------------------------------------------
    try:
        ready = await runtime.tenant.bootstrap()
    except Exception as e:
        log.error(f"Tenant bootstrap failed: {e}")
        await runtime.aclose()
        return

    if ready:
        log.info(f"Active club: {runtime.tenant.current_club_id}")
    else:
        log.warning("No accessible clubs; running without a tenant scope")

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL
    # --------------------------------------------------
    await stop_event.wait()

    log.info("Shutdown initiated")

    try:
        await runtime.aclose()
    except Exception as e:
        log.warning(f"Runtime shutdown error ignored: {e}")

    log.info("CourtKeeper stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    def _handler(signum, frame):
        loop.call_soon_threadsafe(stop_event.set)

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except (ValueError, OSError) as e:
        log.debug(f"Signal handlers not installed: {e}")


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run():
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    try:
        loop.run_until_complete(main(stop_event))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received, shutdown initiated")

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))

        loop.run_until_complete(loop.shutdown_asyncgens())
        asyncio.set_event_loop(None)
        loop.close()


if __name__ == "__main__":
    run()
    sys.exit(0)
