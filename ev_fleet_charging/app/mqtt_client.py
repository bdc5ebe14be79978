"""aiomqtt connection for the simulator: reconnects, queues outgoing messages, routes commands."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable, Coroutine
from typing import Any

import aiomqtt

from .config import AppConfig
from .const import MQTT_RECONNECT_DELAY, TOPIC_AVAILABILITY

logger = logging.getLogger(__name__)

# async handler(topic, payload)
MessageHandler = Callable[[str, str], Coroutine[Any, Any, None]]

Outgoing = tuple[str, str, bool]


class MQTTClient:
    """Broker connection shared by the bridge.

    Outgoing messages are queued and sent by a publisher task while a
    connection is up, so the orchestrator never waits on the network.
    Queued messages survive reconnects. The availability topic carries
    online/offline, with offline also set as the last will.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._handlers: dict[str, MessageHandler] = {}
        self._outgoing: asyncio.Queue[Outgoing] = asyncio.Queue()
        self._connected = asyncio.Event()
        self._client: aiomqtt.Client | None = None

    @property
    def availability_topic(self) -> str:
        return TOPIC_AVAILABILITY.format(self._config.mqtt_base_topic)

    def register(self, pattern: str, handler: MessageHandler) -> None:
        """Route messages matching pattern (+ and # allowed) to handler."""
        self._handlers[pattern] = handler
        logger.debug("Handler registered for %s", pattern)

    def publish_nowait(self, topic: str, payload: str, retain: bool = False) -> None:
        self._outgoing.put_nowait((topic, payload, retain))

    def publish_json(self, topic: str, data: Any, retain: bool = False) -> None:
        self.publish_nowait(topic, json.dumps(data), retain=retain)

    async def start(self) -> None:
        """Stay connected until cancelled, retrying after every broker error."""
        while True:
            logger.info(
                "Connecting to MQTT broker at %s:%d",
                self._config.mqtt_host,
                self._config.mqtt_port,
            )
            try:
                async with aiomqtt.Client(
                    hostname=self._config.mqtt_host,
                    port=self._config.mqtt_port,
                    username=self._config.mqtt_username or None,
                    password=self._config.mqtt_password or None,
                    will=aiomqtt.Will(self.availability_topic, "offline", retain=True),
                ) as client:
                    await self._session(client)
            except aiomqtt.MqttError as e:
                logger.warning(
                    "MQTT connection lost: %s. Reconnecting in %ds...",
                    e,
                    MQTT_RECONNECT_DELAY,
                )
            finally:
                self._client = None
                self._connected.clear()
            await asyncio.sleep(MQTT_RECONNECT_DELAY)

    async def _session(self, client: aiomqtt.Client) -> None:
        """Announce, subscribe, then route messages until the connection drops."""
        self._client = client
        await client.publish(self.availability_topic, "online", retain=True)
        for pattern in self._handlers:
            await client.subscribe(pattern)
        self._connected.set()
        logger.info("MQTT connected, %d subscription(s)", len(self._handlers))

        publisher = asyncio.create_task(self._publisher(client))
        try:
            async for message in client.messages:
                await self._dispatch(str(message.topic), self._decode(message.payload))
        finally:
            publisher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await publisher

    async def stop(self) -> None:
        """Publish offline while the connection is still up."""
        if self._client is None or not self._connected.is_set():
            return
        try:
            await self._client.publish(self.availability_topic, "offline", retain=True)
        except aiomqtt.MqttError as e:
            logger.warning("Could not publish offline status: %s", e)

    async def _publisher(self, client: aiomqtt.Client) -> None:
        while True:
            message = await self._outgoing.get()
            topic, payload, retain = message
            try:
                await client.publish(topic, payload, retain=retain)
            except aiomqtt.MqttError:
                logger.warning(
                    "Publish to %s failed, retrying in %ds", topic, MQTT_RECONNECT_DELAY
                )
                self._outgoing.put_nowait(message)
                await asyncio.sleep(MQTT_RECONNECT_DELAY)

    @staticmethod
    def _decode(payload: Any) -> str:
        if isinstance(payload, (bytes, bytearray)):
            return payload.decode("utf-8", errors="replace")
        return str(payload)

    async def _dispatch(self, topic: str, payload: str) -> None:
        for pattern, handler in self._handlers.items():
            if not self.topic_matches(pattern, topic):
                continue
            try:
                await handler(topic, payload)
            except Exception:
                logger.exception("Handler for %s failed on %s", pattern, topic)

    @staticmethod
    def topic_matches(pattern: str, topic: str) -> bool:
        """MQTT wildcard match: + is one level, # is the rest of the topic."""
        levels = topic.split("/")
        filters = pattern.split("/")
        for index, level_filter in enumerate(filters):
            if level_filter == "#":
                return True
            if index == len(levels):
                return False
            if level_filter not in ("+", levels[index]):
                return False
        return len(filters) == len(levels)
