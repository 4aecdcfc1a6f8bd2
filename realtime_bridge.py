# ================================
# realtime_bridge.py - Supabase Realtime -> full reload of completed orders
# ================================
import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def _event_type(payload: Any) -> str:
    if not isinstance(payload, dict):
        return "UNSPECIFIED"
    for source in (payload, payload.get("data") or {}):
        if isinstance(source, dict):
            for key in ("eventType", "type"):
                value = source.get(key)
                if isinstance(value, str) and value:
                    return value.upper()
    return "UNSPECIFIED"


class RealtimeBridge:
    """One Realtime subscription on completed orders; every event triggers a reload.

    supabase-py only offers Realtime on its async client, so the bridge runs a
    private event loop in a daemon thread. Reloads run on a single worker so
    bursts of events are applied one after another, in arrival order.
    """

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[Any]],
        on_change: Callable[[], Any],
        *,
        channel_name: str = "orders-completed-changes",
        schema: str = "public",
        table: str = "orders",
        row_filter: str = "status=eq.completed",
        timeout: float = 15,
    ):
        self._client_factory = client_factory
        self._on_change = on_change
        self.channel_name = channel_name
        self.schema = schema
        self.table = table
        self.row_filter = row_filter
        self.timeout = timeout

        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._reloader: Optional[ThreadPoolExecutor] = None
        self._client = None
        self._channel = None

    @property
    def is_subscribed(self) -> bool:
        return self._channel is not None

    # ---------------- loop plumbing ----------------
    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._thread is None or not self._thread.is_alive():
            loop = asyncio.new_event_loop()
            thread = threading.Thread(target=loop.run_forever, name="orders-realtime", daemon=True)
            thread.start()
            self._loop, self._thread = loop, thread
        if self._reloader is None:
            self._reloader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="orders-reload")
        return self._loop

    def _run(self, coro) -> Any:
        future = asyncio.run_coroutine_threadsafe(coro, self._ensure_loop())
        return future.result(timeout=self.timeout)

    # ---------------- lifecycle ----------------
    def start(self) -> bool:
        """Open the subscription, replacing any previous one. Returns False on failure."""
        with self._lock:
            try:
                self._run(self._subscribe())
                return True
            except Exception as e:
                logger.error("Error subscribing to orders realtime (after sales): %s", e)
                return False

    def stop(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            if loop is None:
                return
            try:
                if self._channel is not None:
                    self._run(self._unsubscribe())
            except Exception as e:
                logger.warning("Error removing orders realtime channel: %s", e)
            finally:
                loop.call_soon_threadsafe(loop.stop)
                if thread is not None:
                    thread.join(timeout=5)
                if thread is None or not thread.is_alive():
                    loop.close()
                if self._reloader is not None:
                    self._reloader.shutdown(wait=True)
                self._loop = self._thread = self._reloader = None
                self._client = None
                self._channel = None
            logger.info("Orders realtime bridge stopped")

    async def _subscribe(self) -> None:
        if self._client is None:
            self._client = await self._client_factory()

        if self._channel is not None:
            await self._unsubscribe()

        channel = self._client.channel(self.channel_name)
        channel.on_postgres_changes(
            "*",
            schema=self.schema,
            table=self.table,
            filter=self.row_filter,
            callback=self.handle_change,
        )
        await channel.subscribe(self.handle_status)
        self._channel = channel

    async def _unsubscribe(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None and self._client is not None:
            await self._client.remove_channel(channel)

    # ---------------- callbacks ----------------
    def handle_change(self, payload: Any) -> Optional[Future]:
        logger.info("Orders realtime event (after sales): %s", _event_type(payload))
        reloader = self._reloader
        if reloader is None:
            logger.warning("Realtime event received while the bridge is stopped; ignoring")
            return None
        return reloader.submit(self._reload)

    def _reload(self) -> None:
        try:
            self._on_change()
        except Exception:
            logger.exception("Reload after realtime event failed")

    def handle_status(self, status: Any, err: Optional[Exception] = None) -> None:
        value = getattr(status, "value", status)
        if value == "SUBSCRIBED":
            logger.info("Subscribed to orders realtime changes (after sales - completed)")
        elif value in ("CHANNEL_ERROR", "TIMED_OUT"):
            logger.error("Error subscribing to orders realtime (after sales): %s %s", value, err or "")
        else:
            logger.info("Orders realtime channel status: %s", value)
