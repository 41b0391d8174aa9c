"""
REST client for the hosted database.

Filters use the gateway's query syntax, e.g. ``("payer_id", "eq.123")`` or
``("status_code", "in.(approved,in_progress)")``.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple
import httpx

from ...config import DatabaseConfig, get_settings
from ...core.exceptions import DatabaseRequestError
from ...utils.logging import get_logger

logger = get_logger(__name__)

Filters = Sequence[Tuple[str, str]]


def in_list(values: Sequence[str]) -> str:
    """Build an ``in.(...)`` filter value."""
    return "in.(" + ",".join(str(v) for v in values) + ")"


class HostedDatabaseService:
    """Thin async wrapper over the hosted database's REST tables."""

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or DatabaseConfig.from_settings(get_settings())
        self._transport = transport

    async def _make_request(
        self,
        method: str,
        table: str,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make HTTP request with error handling."""
        url = self.config.get_table_url(table)
        request_headers = self.config.get_headers()
        if headers:
            request_headers.update(headers)

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                    headers=request_headers,
                )
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()
        except httpx.TimeoutException:
            logger.error("database request timed out: %s %s", method, table)
            raise DatabaseRequestError(f"Request to {table} timed out")
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("database request failed: %s %s -> %s", method, table, status)
            raise DatabaseRequestError(
                f"{table} request failed with HTTP {status}", status_code=status
            )
        except httpx.HTTPError as e:
            logger.error("database request failed: %s %s: %s", method, table, e)
            raise DatabaseRequestError(f"Request to {table} failed: {e}")
        except ValueError as e:
            raise DatabaseRequestError(f"Invalid JSON from {table}: {e}")

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[Filters] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch rows from a table or view."""
        params: List[Tuple[str, str]] = [("select", columns)]
        params.extend(filters or [])
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        rows = await self._make_request("GET", table, params=params)
        if not isinstance(rows, list):
            raise DatabaseRequestError(f"Unexpected response shape from {table}")
        return rows

    async def insert(
        self,
        table: str,
        row: Dict[str, Any],
        *,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Insert a single row and return it as stored."""
        headers = {"Prefer": "return=representation"}
        if extra_headers:
            headers.update(extra_headers)

        rows = await self._make_request("POST", table, json=[row], headers=headers)
        if not isinstance(rows, list):
            raise DatabaseRequestError(f"Unexpected response shape from {table}")
        if not rows:
            raise DatabaseRequestError(f"Insert into {table} returned no rows")
        return rows[0]
