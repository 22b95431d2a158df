"""
Notification hub for pushing token events to subscribers.

Events are fanned out to WebSocket clients connected on a channel and,
when enabled, published on the Redis channel of the same name so other
processes can relay them. Publishing is fire-and-forget: failures are
logged and never reach the caller.
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from ..core.logging import get_logger
from ..storage.cache import TokenCache

logger = get_logger(__name__)


class NotificationHub:
    """Manages WebSocket subscribers per channel and publishes events."""

    def __init__(self, cache: Optional[TokenCache] = None, broker_enabled: bool = True):
        """
        Initialize the hub.

        Args:
            cache: Cache whose Redis connection doubles as the broker
            broker_enabled: Publish events to Redis as well as local clients
        """
        self.cache = cache
        self.broker_enabled = broker_enabled and cache is not None
        self.channels: Dict[str, Dict[str, WebSocket]] = {}
        self.published_count = 0

    @property
    def connection_count(self) -> int:
        return sum(len(clients) for clients in self.channels.values())

    async def connect(self, websocket: WebSocket, channel: str) -> str:
        """
        Accept a subscriber on a channel.

        Returns:
            Generated client id
        """
        client_id = str(uuid.uuid4())
        await websocket.accept()
        self.channels.setdefault(channel, {})[client_id] = websocket

        logger.info(
            "WebSocket client connected",
            extra={
                'channel': channel,
                'extra_data': {
                    'client_id': client_id,
                    'total_connections': self.connection_count,
                }
            }
        )

        await websocket.send_json({
            "type": "connection_established",
            "channel": channel,
            "client_id": client_id,
            "server_time": datetime.now(timezone.utc).isoformat(),
        })
        return client_id

    def disconnect(self, channel: str, client_id: str) -> None:
        """Forget a subscriber."""
        clients = self.channels.get(channel)
        if not clients or client_id not in clients:
            return
        del clients[client_id]
        if not clients:
            del self.channels[channel]

        logger.info(
            "WebSocket client disconnected",
            extra={
                'channel': channel,
                'extra_data': {
                    'client_id': client_id,
                    'total_connections': self.connection_count,
                }
            }
        )

    async def serve(self, websocket: WebSocket, channel: str) -> None:
        """
        Keep a subscriber connection open until the client leaves.

        Clients may send ``ping`` and get a ``pong`` back; anything else
        is ignored.
        """
        client_id = await self.connect(websocket, channel)
        try:
            while True:
                message = await websocket.receive_text()
                if message.strip().lower() == "ping":
                    await websocket.send_json({"type": "pong"})
        except WebSocketDisconnect:
            pass
        finally:
            self.disconnect(channel, client_id)

    async def publish(self, channel: str, event: str, payload: Any) -> int:
        """
        Publish an event to every subscriber of a channel.

        Args:
            channel: Channel name
            event: Event name
            payload: JSON serializable event data

        Returns:
            Number of local WebSocket clients that received the event
        """
        envelope = {
            "channel": channel,
            "event": event,
            "data": payload,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        delivered = 0
        for client_id, websocket in list(self.channels.get(channel, {}).items()):
            try:
                await websocket.send_json(envelope)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Dropping subscriber after send failure: {e}",
                    extra={'channel': channel, 'extra_data': {'client_id': client_id}}
                )
                self.disconnect(channel, client_id)

        if self.broker_enabled:
            try:
                await self.cache.publish(channel, json.dumps(envelope, default=str))
            except Exception as e:
                logger.error(
                    f"Broker publish failed: {e}",
                    extra={'channel': channel, 'extra_data': {'event': event}}
                )

        self.published_count += 1
        logger.info(
            "Notification published",
            extra={
                'channel': channel,
                'extra_data': {'event': event, 'local_recipients': delivered}
            }
        )
        return delivered


__all__ = ["NotificationHub"]
