"""
Helius live mint feed.

Subscribes to TOKEN_MINT events over a WebSocket, enriches each fresh
unseen mint, merges it into the cached new tokens list and notifies
subscribers. The connection is re-established after a fixed delay for
as long as the feed runs; ``stop()`` ends it.

File: backend/hypescreener/discovery/live_feed.py
"""
from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

import websockets

from ..core.exceptions import CacheError
from ..core.logging import get_logger
from ..core.settings import Settings
from ..storage.cache import TokenCache
from ..ws.hub import NotificationHub
from .enricher import TokenEnricher
from .models import (
    TokenRecord,
    age_in_hours,
    format_age,
    parse_timestamp,
    rank_tokens,
    text_or_none,
)

logger = get_logger(__name__)

MINT_EVENT_TYPE = "TOKEN_MINT"


class FeedState(str, Enum):
    """Connection states of the live feed."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class MessageOutcome(str, Enum):
    """What happened to one stream message."""
    MALFORMED = "malformed"
    IGNORED = "ignored"
    STALE = "stale"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    ACCEPTED = "accepted"


class HeliusMintListener:
    """
    Live ingestion of newly minted tokens.

    State machine: DISCONNECTED -> CONNECTING -> SUBSCRIBED, back to
    DISCONNECTED on error or close, then a reconnect after
    ``reconnect_delay`` seconds. There is no retry limit.
    """

    def __init__(
        self,
        settings: Settings,
        url: str,
        enricher: TokenEnricher,
        cache: TokenCache,
        hub: NotificationHub,
        connect: Optional[Callable[..., Any]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the listener.

        Args:
            settings: Application settings
            url: WebSocket URL of the mint stream
            enricher: Token enricher
            cache: Token cache
            hub: Notification hub for new token events
            connect: WebSocket connect factory, ``websockets.connect`` by default
            clock: Current time source
        """
        self.url = url
        self.enricher = enricher
        self.cache = cache
        self.hub = hub
        self.connect = connect or websockets.connect
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.freshness_window_hours = settings.freshness_window_hours
        self.top_limit = settings.top_tokens_limit
        self.reconnect_delay = settings.live_feed_reconnect_delay
        self.channel = settings.new_tokens_channel
        self.event_name = settings.new_token_event

        self.state = FeedState.DISCONNECTED
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        # Stats
        self.connection_attempts = 0
        self.messages_received = 0
        self.tokens_accepted = 0

    @property
    def subscribe_message(self) -> dict:
        """Subscription request for mint events on every account."""
        return {
            "command": "subscribe",
            "accounts": [],
            "types": [MINT_EVENT_TYPE],
        }

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Run the feed as a background task."""
        if self.is_running:
            logger.warning("Helius live feed is already running")
            return self._task
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="helius-mint-listener")
        return self._task

    def request_stop(self) -> None:
        """Ask the run loop to exit after the current step."""
        self._stop_event.set()

    async def stop(self) -> None:
        """Signal the feed to stop and wait for it to finish."""
        logger.info("Stopping Helius live feed")
        self.request_stop()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.state = FeedState.DISCONNECTED

    async def run(self) -> None:
        """Connect, subscribe and consume until stopped."""
        while not self._stop_event.is_set():
            self.state = FeedState.CONNECTING
            self.connection_attempts += 1
            logger.info("Connecting to Helius WebSocket...", extra={'state': self.state.value})

            try:
                async with self.connect(self.url) as ws:
                    await ws.send(json.dumps(self.subscribe_message))
                    self.state = FeedState.SUBSCRIBED
                    logger.info("Connected to Helius WebSocket", extra={'state': self.state.value})

                    async for raw in ws:
                        await self.handle_message(raw)
                        if self._stop_event.is_set():
                            break

                logger.info("Helius WebSocket connection closed")
            except asyncio.CancelledError:
                self.state = FeedState.DISCONNECTED
                raise
            except Exception as e:
                logger.error(f"Helius WebSocket error: {e!r}")

            self.state = FeedState.DISCONNECTED
            if self._stop_event.is_set():
                break

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.reconnect_delay)
            except asyncio.TimeoutError:
                pass

        self.state = FeedState.DISCONNECTED
        logger.info("Helius live feed stopped")

    async def handle_message(self, raw: Any) -> MessageOutcome:
        """
        Process one stream message.

        Never raises for bad input: malformed messages are logged and
        dropped so the connection is unaffected.
        """
        self.messages_received += 1

        try:
            event = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed Helius message: {e}")
            return MessageOutcome.MALFORMED

        if not isinstance(event, dict) or event.get("type") != MINT_EVENT_TYPE:
            return MessageOutcome.IGNORED

        mint = event.get("data")
        if not isinstance(mint, dict) or not text_or_none(mint.get("mint")):
            logger.warning("Dropping mint event without a mint address")
            return MessageOutcome.MALFORMED

        created_at = parse_timestamp(mint.get("timestamp"))
        if created_at is None:
            logger.warning(
                "Dropping mint event with unreadable timestamp",
                extra={'token_address': mint.get("mint")}
            )
            return MessageOutcome.MALFORMED

        age_hours = age_in_hours(created_at, self.clock())
        if age_hours >= self.freshness_window_hours:
            return MessageOutcome.STALE

        token = TokenRecord(
            name=text_or_none(mint.get("name")),
            address=mint["mint"],
            age=format_age(age_hours),
        )
        logger.info(
            f"New token mint detected: {token.name} ({token.address})",
            extra={'token_address': token.address}
        )

        try:
            if await self.cache.token_exists(token.address):
                return MessageOutcome.DUPLICATE

            await self.enricher.enrich(token)

            cached = await self.cache.get_new_tokens() or []
            ranked = rank_tokens([token, *cached], limit=self.top_limit)
            await self.cache.set_new_tokens(ranked)
        except CacheError as e:
            logger.error(
                f"Error processing mint event: {e.message}",
                extra={'token_address': token.address}
            )
            return MessageOutcome.FAILED

        self.tokens_accepted += 1
        await self.hub.publish(self.channel, self.event_name, token.to_public())
        return MessageOutcome.ACCEPTED

    def get_stats(self) -> dict:
        """Counters for the health endpoint."""
        return {
            "state": self.state.value,
            "running": self.is_running,
            "connection_attempts": self.connection_attempts,
            "messages_received": self.messages_received,
            "tokens_accepted": self.tokens_accepted,
        }


__all__ = ["HeliusMintListener", "FeedState", "MessageOutcome"]
