"""MQTT bridge: publishes a charging session and accepts dashboard commands."""

from __future__ import annotations

import logging

from .config import AppConfig
from .const import (
    DEVICE_IDENTIFIER,
    DEVICE_MANUFACTURER,
    DEVICE_MODEL,
    TOPIC_CHARGE,
    TOPIC_CHARGE_STATUS,
    TOPIC_COMMAND,
    TOPIC_EVENT,
    TOPIC_STATUS,
)
from .mqtt_client import MQTTClient
from .orchestrator import ChargingOrchestrator, ChargingSession
from .simulator import charge_status_text, format_charge_percentage

logger = logging.getLogger(__name__)

# Command payload -> orchestrator method name
COMMANDS: dict[str, str] = {
    "plug_in": "plug_in_car",
    "unplug": "unplug_car",
    "override": "trigger_override",
    "cancel_override": "cancel_override_charge",
    "cancel_schedule": "cancel_scheduled_charge",
    "schedule": "schedule_charge",
}


class MQTTBridge:
    """Mirrors one session onto MQTT topics and maps command payloads to actions."""

    def __init__(
        self,
        config: AppConfig,
        mqtt: MQTTClient,
        orchestrator: ChargingOrchestrator,
    ) -> None:
        self._config = config
        self._mqtt = mqtt
        self._orchestrator = orchestrator
        self._base = config.mqtt_base_topic
        self._slug = orchestrator.session.slug
        self._last_event_id: str | None = None
        self._last_charge: str | None = None

    def _topic(self, template: str) -> str:
        return template.format(self._base, self._slug)

    def setup(self) -> None:
        """Register the command handler and start observing the session."""
        self._mqtt.register(self._topic(TOPIC_COMMAND), self._on_command)
        self._orchestrator.add_listener(self.on_session_update)

    async def _on_command(self, topic: str, payload: str) -> None:
        command = payload.strip().lower()
        method_name = COMMANDS.get(command)
        if method_name is None:
            logger.warning("Unknown command on %s: %r", topic, payload)
            return
        logger.info("Command %s for %s", command, self._slug)
        getattr(self._orchestrator, method_name)()

    def on_session_update(self, session: ChargingSession, state_changed: bool) -> None:
        """Publish whatever changed since the last update."""
        charge = format_charge_percentage(session.charge)
        if charge != self._last_charge:
            self._mqtt.publish_nowait(self._topic(TOPIC_CHARGE), charge)
            self._mqtt.publish_nowait(
                self._topic(TOPIC_CHARGE_STATUS), charge_status_text(session.charge)
            )
            self._last_charge = charge

        if not state_changed:
            return

        self._mqtt.publish_nowait(
            self._topic(TOPIC_STATUS), session.charger_state.status.value, retain=True
        )
        # Nested dispatches can add several events per update; publish oldest first.
        fresh = []
        for event in session.event_history:
            if event.id == self._last_event_id:
                break
            fresh.append(event)
        for event in reversed(fresh):
            self._mqtt.publish_json(self._topic(TOPIC_EVENT), event.to_dict())
        if fresh:
            self._last_event_id = fresh[0].id

    def publish_snapshot(self) -> None:
        """Publish the full current state (used on startup)."""
        session = self._orchestrator.session
        self._last_charge = None
        self.on_session_update(session, state_changed=True)

    def publish_discovery(self) -> None:
        """Publish HA MQTT Discovery configs for this vehicle."""
        prefix = self._config.ha_discovery_prefix
        uid = f"{DEVICE_IDENTIFIER}_{self._slug.replace('-', '_')}"
        nickname = self._orchestrator.session.vehicle.nickname
        device = {
            "identifiers": [uid],
            "name": nickname,
            "manufacturer": DEVICE_MANUFACTURER,
            "model": DEVICE_MODEL,
        }
        availability = {"availability_topic": self._mqtt.availability_topic}

        sensors = [
            {
                "name": f"{nickname} State of Charge",
                "unique_id": f"{uid}_charge",
                "state_topic": self._topic(TOPIC_CHARGE),
                "unit_of_measurement": "%",
                "device_class": "battery",
                "state_class": "measurement",
            },
            {
                "name": f"{nickname} Charger Status",
                "unique_id": f"{uid}_status",
                "state_topic": self._topic(TOPIC_STATUS),
                "icon": "mdi:ev-station",
            },
            {
                "name": f"{nickname} Battery Status",
                "unique_id": f"{uid}_charge_status",
                "state_topic": self._topic(TOPIC_CHARGE_STATUS),
                "icon": "mdi:battery-heart-variant",
            },
        ]
        for sensor in sensors:
            sensor.update(availability, device=device)
            self._mqtt.publish_json(
                f"{prefix}/sensor/{sensor['unique_id']}/config", sensor, retain=True
            )

        for command in COMMANDS:
            button = {
                "name": f"{nickname} {command.replace('_', ' ').title()}",
                "unique_id": f"{uid}_{command}",
                "command_topic": self._topic(TOPIC_COMMAND),
                "payload_press": command,
                "device": device,
                **availability,
            }
            self._mqtt.publish_json(
                f"{prefix}/button/{button['unique_id']}/config", button, retain=True
            )

        logger.info("HA Discovery configs published for %s", self._slug)
