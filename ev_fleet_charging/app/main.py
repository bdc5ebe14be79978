"""Entry point for the EV fleet charging simulator."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import AppConfig, load_config
from .document_store import DocumentStoreClient
from .models import VehicleRecord
from .mqtt_bridge import MQTTBridge
from .mqtt_client import MQTTClient
from .orchestrator import ChargingOrchestrator, ChargingSession
from .persistence import Persistence
from .timers import TimerRegistry
from .vehicle_store import InMemoryVehicleStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def _timezone(config: AppConfig) -> ZoneInfo:
    try:
        return ZoneInfo(config.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using UTC", config.timezone)
        return ZoneInfo("UTC")


async def select_vehicle(config: AppConfig) -> VehicleRecord:
    """Pick the vehicle to simulate from the configured record store.

    Falls back to the first record, then to a freshly created demo vehicle.
    """
    if config.store_backend == "document":
        client = DocumentStoreClient(config)
        record = await client.get_by_slug(config.vehicle_slug) if config.vehicle_slug else None
        if record is None:
            records = await client.list_all()
            record = records[0] if records else None
        if record is None:
            vehicle_id = await client.create(
                config.demo_nickname, config.demo_model, config.demo_battery_capacity
            )
            record = await client.get(vehicle_id) if vehicle_id else None
        if record is not None:
            return record
        logger.warning("Record store unavailable, simulating a local demo vehicle")

    store = InMemoryVehicleStore(Persistence(config.store_path))
    store.load()
    record = store.get_by_slug(config.vehicle_slug) if config.vehicle_slug else None
    if record is None and config.vehicle_slug:
        logger.warning("No vehicle matches slug %r", config.vehicle_slug)
    if record is None:
        records = store.list_all()
        record = records[0] if records else None
    if record is None:
        vehicle_id = store.create(
            config.demo_nickname, config.demo_model, config.demo_battery_capacity
        )
        record = store.get(vehicle_id)
    if record is None:
        raise RuntimeError("demo vehicle could not be created")
    return record


async def main() -> None:
    """Run the EV fleet charging simulator."""
    logger.info("Starting EV fleet charging simulator")

    config = load_config()
    logger.info(
        "Config: store=%s, mqtt=%s, speed=x%.1f, history=%s",
        config.store_backend,
        "on" if config.mqtt_enabled else "off",
        config.simulation_speed,
        config.event_history_limit or "unbounded",
    )

    vehicle = await select_vehicle(config)
    session = ChargingSession.for_vehicle(vehicle, config.event_history_limit)
    timers = TimerRegistry(datetime.now(_timezone(config)))
    orchestrator = ChargingOrchestrator(config, session, timers)
    logger.info(
        "Simulating %s (%s) at %.1f%%", session.slug, vehicle.model, session.charge
    )

    tasks = [orchestrator.run()]
    mqtt: MQTTClient | None = None
    if config.mqtt_enabled:
        mqtt = MQTTClient(config)
        bridge = MQTTBridge(config, mqtt, orchestrator)
        bridge.setup()
        bridge.publish_discovery()
        bridge.publish_snapshot()
        tasks.append(mqtt.start())

    # Shutdown handler
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler)

    async def shutdown_watcher() -> None:
        await shutdown_event.wait()
        logger.info(
            "Shutting down: %s %s at %.1f%%",
            session.slug,
            session.charger_state.status.value,
            session.charge,
        )
        orchestrator.stop()
        if mqtt is not None:
            await mqtt.stop()
        for task in asyncio.all_tasks():
            if task is not asyncio.current_task():
                task.cancel()

    try:
        await asyncio.gather(*tasks, shutdown_watcher())
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, exiting")
    except Exception:
        logger.exception("Unexpected error in main loop")
    finally:
        logger.info("EV fleet charging simulator stopped")


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
