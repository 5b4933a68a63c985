"""
REST Order Store

Order store for a PostgREST-compatible managed backend (e.g. Supabase),
where work orders live in the backend's own database and are reached only
through its REST interface.

Tables used:
- work_orders (filtered by id)
- order_statuses (status name -> id)
"""

import httpx
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from app.schemas.work_order import InspectionRecord, MUTABLE_FIELDS
from app.services.order_store import OrderNotFoundError, OrderStoreError, UnknownStatusError

logger = logging.getLogger(__name__)


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class RestOrderStore:
    """Order store talking to the backend's REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    async def get_client(self) -> httpx.AsyncClient:
        """Get HTTP client with auth headers."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/rest/v1",
                timeout=self.timeout,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> list:
        client = await self.get_client()
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Order store {method} {path} failed: {e.response.status_code}")
            raise OrderStoreError(f"Backend returned {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Order store {method} {path} unreachable: {type(e).__name__}")
            raise OrderStoreError(f"Backend unreachable: {type(e).__name__}") from e
        return response.json()

    async def read_order(self, order_id: int) -> InspectionRecord:
        rows = await self._request(
            "GET",
            "/work_orders",
            params={"id": f"eq.{order_id}", "select": "*,status:order_statuses(name)"},
        )
        if not rows:
            raise OrderNotFoundError(order_id)

        data: Dict[str, Any] = dict(rows[0])
        status = data.pop("status", None)
        data["status"] = status.get("name") if isinstance(status, dict) else None
        try:
            return InspectionRecord.model_validate(data)
        except ValidationError as e:
            raise OrderStoreError(
                f"Work order {order_id} has invalid data: {e.error_count()} field(s)"
            ) from e

    async def update_order(self, order_id: int, fields: Mapping[str, Any]) -> None:
        """Apply a partial field update. Writes are idempotent assignments."""
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise OrderStoreError(f"Fields not writable: {', '.join(sorted(unknown))}")
        if not fields:
            return

        await self._patch_order(order_id, {name: _json_value(value) for name, value in fields.items()})
        logger.debug(f"Work order {order_id} updated: {sorted(fields)}")

    async def set_order_status(self, order_id: int, status_name: str) -> None:
        rows = await self._request(
            "GET",
            "/order_statuses",
            params={"name": f"eq.{status_name}", "select": "id"},
        )
        if not rows:
            raise UnknownStatusError(status_name)

        await self._patch_order(order_id, {"status_id": rows[0]["id"]})
        logger.info(f"Work order {order_id} status set to {status_name}")

    async def _patch_order(self, order_id: int, body: Dict[str, Any]) -> None:
        rows = await self._request(
            "PATCH",
            "/work_orders",
            params={"id": f"eq.{order_id}"},
            json=body,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise OrderNotFoundError(order_id)
