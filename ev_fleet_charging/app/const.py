"""Constants and defaults for the EV fleet charging simulator."""

# Charging model
CHARGE_RATE_PER_SECOND = 0.1  # percent per tick
MAXIMUM_CHARGE_PERCENT = 100.0
OPTIMAL_CHARGE_PERCENT = 85.0  # target for scheduled charges
DEFAULT_INITIAL_CHARGE = 50  # percent, new vehicle records

# Charge windows
OVERRIDE_DURATION_MINUTES = 60
SCHEDULE_LEAD_MINUTES = 0.1  # scheduled start = now + 6s
SUSPENSION_RESUME_HOUR = 6  # suspended until next day 06:00

# Orchestrator timers (simulated seconds)
AUTO_SCHEDULE_DELAY = 5.0
SCHEDULED_START_POLL_INTERVAL = 1.0
SUSPENSION_POLL_INTERVAL = 60.0
CHARGE_TICK_INTERVAL = 1.0

# Real-time driver
DEFAULT_CLOCK_RESOLUTION = 0.25  # wall seconds between clock advances
DEFAULT_SIMULATION_SPEED = 1.0

# Event log
EVENT_HISTORY_LIMIT = 50

# Slugs
SLUG_PARTIAL_ID_LENGTH = 6
SLUG_FALLBACK = "untitled"

# Document store HTTP API
DOCUMENT_STORE_QUERY_PATH = "/api/query"
DOCUMENT_STORE_MUTATION_PATH = "/api/mutation"
DOCUMENT_STORE_TIMEOUT = 10  # seconds

# MQTT
DEFAULT_MQTT_BASE_TOPIC = "evfleet"
MQTT_RECONNECT_DELAY = 5  # seconds

# Per-vehicle topics (format with base topic and vehicle slug)
TOPIC_STATUS = "{}/{}/status"
TOPIC_CHARGE = "{}/{}/charge"
TOPIC_CHARGE_STATUS = "{}/{}/charge_status"
TOPIC_EVENT = "{}/{}/event"
TOPIC_COMMAND = "{}/{}/command"
TOPIC_AVAILABILITY = "{}/availability"

# Persistence
STATE_FILE = "/data/vehicles.json"

# HA Discovery
DEFAULT_HA_DISCOVERY_PREFIX = "homeassistant"
DEVICE_IDENTIFIER = "ev_fleet_charging"
DEVICE_MANUFACTURER = "Custom"
DEVICE_MODEL = "EV Charging Simulator v1.0"
