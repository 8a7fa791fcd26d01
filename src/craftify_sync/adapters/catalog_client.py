"""HTTP client for the remote recipe catalog."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class CatalogClient(Protocol):
    """Interface for the remote recipe catalog service."""

    async def fetch_recipes(self) -> list[dict[str, object]]:
        """Return every raw recipe record in the catalog."""


@dataclass
class HttpxCatalogClient(CatalogClient):
    """HTTPX-backed catalog client following cursor pagination."""

    base_url: str
    http_client: httpx.AsyncClient
    api_key: str | None = None
    page_size: int = 200

    @classmethod
    def create(cls, base_url: str, api_key: str | None = None) -> "HttpxCatalogClient":
        """Create a catalog client with a managed httpx session."""
        return cls(base_url=base_url, api_key=api_key, http_client=httpx.AsyncClient())

    async def fetch_recipes(self) -> list[dict[str, object]]:
        """Fetch all catalog pages and return the concatenated records."""
        url = f"{self.base_url}/recipes"
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        records: list[dict[str, object]] = []
        cursor: str | None = None
        while True:
            params: dict[str, object] = {"limit": self.page_size}
            if cursor:
                params["cursor"] = cursor
            response = await self.http_client.get(
                url, params=params, headers=headers, timeout=10
            )
            response.raise_for_status()
            payload = response.json()
            if isinstance(payload, list):
                records.extend(payload)
                return records
            records.extend(payload.get("recipes", []))
            cursor = payload.get("next_cursor")
            if not cursor:
                return records

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
