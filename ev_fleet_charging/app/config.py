"""Configuration loading for the EV fleet charging simulator."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass

from .const import (
    AUTO_SCHEDULE_DELAY,
    DEFAULT_CLOCK_RESOLUTION,
    DEFAULT_HA_DISCOVERY_PREFIX,
    DEFAULT_MQTT_BASE_TOPIC,
    DEFAULT_SIMULATION_SPEED,
    EVENT_HISTORY_LIMIT,
    STATE_FILE,
)

logger = logging.getLogger(__name__)

OPTIONS_PATH = "/data/options.json"

STORE_BACKENDS = ("memory", "document")


@dataclass
class AppConfig:
    """Application configuration."""

    # MQTT bridge (disabled unless mqtt_enabled)
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_username: str = ""
    mqtt_password: str = ""
    mqtt_base_topic: str = DEFAULT_MQTT_BASE_TOPIC

    # Vehicle record store
    store_backend: str = "memory"
    store_path: str = STATE_FILE
    document_store_url: str = ""
    document_store_token: str = ""

    # Vehicle to simulate; first record (or a demo vehicle) when empty
    vehicle_slug: str = ""
    demo_nickname: str = "kEVin"
    demo_model: str = "Mini Cooper E"
    demo_battery_capacity: float = 32.6

    # Simulation
    event_history_limit: int | None = EVENT_HISTORY_LIMIT  # None = unbounded
    auto_schedule_delay: float = AUTO_SCHEDULE_DELAY
    simulation_speed: float = DEFAULT_SIMULATION_SPEED
    clock_resolution: float = DEFAULT_CLOCK_RESOLUTION
    timezone: str = "UTC"

    # HA Discovery
    ha_discovery_prefix: str = DEFAULT_HA_DISCOVERY_PREFIX


def load_config(options_path: str = OPTIONS_PATH) -> AppConfig:
    """Load configuration from add-on options or environment variables."""
    config = AppConfig()

    if os.path.exists(options_path):
        try:
            with open(options_path) as f:
                options = json.load(f)
            logger.info("Loaded configuration from %s", options_path)
            _apply_options(config, options)
            _validate(config)
            return config
        except (json.JSONDecodeError, OSError, TypeError, ValueError) as e:
            logger.warning("Failed to load %s: %s, falling back to env vars", options_path, e)
            config = AppConfig()

    _apply_env(config)
    _validate(config)
    return config


def _history_limit(value: object) -> int | None:
    """Non-positive limits mean keep every event."""
    limit = int(value)  # type: ignore[call-overload]
    return limit if limit > 0 else None


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _apply_options(config: AppConfig, options: dict) -> None:
    """Apply options.json values to config."""
    if "mqtt_enabled" in options:
        config.mqtt_enabled = _as_bool(options["mqtt_enabled"])
    if options.get("mqtt_host"):
        config.mqtt_host = options["mqtt_host"]
    if options.get("mqtt_port"):
        config.mqtt_port = int(options["mqtt_port"])
    if options.get("mqtt_username"):
        config.mqtt_username = options["mqtt_username"]
    if options.get("mqtt_password"):
        config.mqtt_password = options["mqtt_password"]
    if options.get("mqtt_base_topic"):
        config.mqtt_base_topic = options["mqtt_base_topic"].strip("/")
    if options.get("store_backend"):
        config.store_backend = options["store_backend"]
    if options.get("store_path"):
        config.store_path = options["store_path"]
    if options.get("document_store_url"):
        config.document_store_url = options["document_store_url"]
    if options.get("document_store_token"):
        config.document_store_token = options["document_store_token"]
    if options.get("vehicle_slug"):
        config.vehicle_slug = options["vehicle_slug"]
    if options.get("event_history_limit") is not None:
        config.event_history_limit = _history_limit(options["event_history_limit"])
    if options.get("auto_schedule_delay") is not None:
        config.auto_schedule_delay = float(options["auto_schedule_delay"])
    if options.get("simulation_speed") is not None:
        config.simulation_speed = float(options["simulation_speed"])
    if options.get("clock_resolution") is not None:
        config.clock_resolution = float(options["clock_resolution"])
    if options.get("timezone"):
        config.timezone = options["timezone"]
    if options.get("ha_discovery_prefix"):
        config.ha_discovery_prefix = options["ha_discovery_prefix"]


def _apply_env(config: AppConfig) -> None:
    """Apply environment variables to config."""
    config.mqtt_enabled = _as_bool(os.environ.get("MQTT_ENABLED", config.mqtt_enabled))
    config.mqtt_host = os.environ.get("MQTT_HOST", config.mqtt_host)
    config.mqtt_port = int(os.environ.get("MQTT_PORT", config.mqtt_port))
    config.mqtt_username = os.environ.get("MQTT_USERNAME", config.mqtt_username)
    config.mqtt_password = os.environ.get("MQTT_PASSWORD", config.mqtt_password)
    config.mqtt_base_topic = os.environ.get(
        "MQTT_BASE_TOPIC", config.mqtt_base_topic
    ).strip("/")

    config.store_backend = os.environ.get("STORE_BACKEND", config.store_backend)
    config.store_path = os.environ.get("STORE_PATH", config.store_path)
    config.document_store_url = os.environ.get(
        "DOCUMENT_STORE_URL", config.document_store_url
    )
    config.document_store_token = os.environ.get(
        "DOCUMENT_STORE_TOKEN", config.document_store_token
    )
    config.vehicle_slug = os.environ.get("VEHICLE_SLUG", config.vehicle_slug)

    limit_env = os.environ.get("EVENT_HISTORY_LIMIT")
    if limit_env:
        config.event_history_limit = _history_limit(limit_env)
    config.auto_schedule_delay = float(
        os.environ.get("AUTO_SCHEDULE_DELAY", config.auto_schedule_delay)
    )
    config.simulation_speed = float(
        os.environ.get("SIMULATION_SPEED", config.simulation_speed)
    )
    config.clock_resolution = float(
        os.environ.get("CLOCK_RESOLUTION", config.clock_resolution)
    )
    config.timezone = os.environ.get("TIMEZONE", config.timezone)


def _validate(config: AppConfig) -> None:
    """Reset out-of-range values to defaults."""
    if config.store_backend not in STORE_BACKENDS:
        logger.warning(
            "Unknown store_backend %r, using 'memory'", config.store_backend
        )
        config.store_backend = "memory"
    if config.store_backend == "document" and not config.document_store_url:
        logger.warning("store_backend 'document' needs document_store_url, using 'memory'")
        config.store_backend = "memory"
    if config.simulation_speed <= 0:
        logger.warning("simulation_speed must be positive, using %.1f", DEFAULT_SIMULATION_SPEED)
        config.simulation_speed = DEFAULT_SIMULATION_SPEED
    if config.clock_resolution <= 0:
        logger.warning("clock_resolution must be positive, using %.2f", DEFAULT_CLOCK_RESOLUTION)
        config.clock_resolution = DEFAULT_CLOCK_RESOLUTION
    if config.auto_schedule_delay < 0:
        config.auto_schedule_delay = AUTO_SCHEDULE_DELAY
