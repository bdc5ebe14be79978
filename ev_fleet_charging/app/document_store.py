"""Client for the hosted document database that holds vehicle records."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from .config import AppConfig
from .const import (
    DOCUMENT_STORE_MUTATION_PATH,
    DOCUMENT_STORE_QUERY_PATH,
    DOCUMENT_STORE_TIMEOUT,
)
from .models import VehicleRecord
from .slugs import parse_slug

logger = logging.getLogger(__name__)


class DocumentStoreClient:
    """Calls the deployment's vehicle functions over its HTTP API.

    Failures are logged and reported as None / empty results so the
    simulator keeps running without the store.
    """

    def __init__(self, config: AppConfig) -> None:
        self._base_url = config.document_store_url.rstrip("/")
        self._token = config.document_store_token
        if not self._base_url:
            logger.warning("document_store_url not set - record store calls will fail")

    @property
    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _call(self, endpoint: str, function: str, args: dict[str, Any]) -> Any:
        """POST a function call and return its value, or None on error."""
        url = f"{self._base_url}{endpoint}"
        payload = {"path": function, "args": args, "format": "json"}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    headers=self._headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=DOCUMENT_STORE_TIMEOUT),
                ) as resp:
                    if resp.status != 200:
                        logger.warning("%s returned %d", function, resp.status)
                        return None
                    data = await resp.json()
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            logger.warning("Call to %s failed: %s", function, e)
            return None

        if not isinstance(data, dict) or data.get("status") != "success":
            message = data.get("errorMessage") if isinstance(data, dict) else data
            logger.warning("%s failed: %s", function, message)
            return None
        return data.get("value")

    async def query(self, function: str, **args: Any) -> Any:
        return await self._call(DOCUMENT_STORE_QUERY_PATH, function, args)

    async def mutation(self, function: str, **args: Any) -> Any:
        return await self._call(DOCUMENT_STORE_MUTATION_PATH, function, args)

    @staticmethod
    def _to_record(doc: Any) -> VehicleRecord | None:
        if not isinstance(doc, dict):
            return None
        try:
            return VehicleRecord.from_dict(doc)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed vehicle document %r: %s", doc, e)
            return None

    async def list_all(self) -> list[VehicleRecord]:
        docs = await self.query("vehicles:get")
        if not isinstance(docs, list):
            return []
        records = [self._to_record(doc) for doc in docs]
        return [r for r in records if r is not None]

    async def get(self, vehicle_id: str) -> VehicleRecord | None:
        return self._to_record(await self.query("vehicles:getById", id=vehicle_id))

    async def get_by_slug(self, slug: str) -> VehicleRecord | None:
        if parse_slug(slug) is None:
            return None
        return self._to_record(await self.query("vehicles:getBySlug", slug=slug))

    async def search(self, prefix: str) -> list[VehicleRecord]:
        """Nickname prefix search, filtered client-side."""
        needle = prefix.strip().lower()
        return [r for r in await self.list_all() if r.nickname.lower().startswith(needle)]

    async def create(
        self, nickname: str, model: str, battery_capacity: float
    ) -> str | None:
        """Create a vehicle; the store sets the initial charge. Returns the new id."""
        vehicle_id = await self.mutation(
            "vehicles:create",
            nickname=nickname,
            model=model,
            batteryCapacity=float(battery_capacity),
        )
        if vehicle_id is None:
            return None
        logger.info("Created vehicle %s (%s) id=%s", nickname, model, vehicle_id)
        return str(vehicle_id)
