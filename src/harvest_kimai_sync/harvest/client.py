"""Harvest API client."""

import logging
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from harvest_kimai_sync.exceptions import NetworkError
from harvest_kimai_sync.harvest.models import HarvestTask, HarvestTimeEntry


class HarvestClient:
    """Async client for the Harvest v2 API."""

    BASE_URL = "https://api.harvestapp.com/v2"
    USER_AGENT = "Harvest-Kimai Transfer Tool"

    def __init__(
        self,
        access_token: str,
        account_id: str,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Harvest client.

        Args:
            access_token: Harvest personal access token.
            account_id: Harvest account ID.
            logger: Logger to report progress to.
            transport: Optional httpx transport, used by tests.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Harvest-Account-ID": account_id,
                "User-Agent": self.USER_AGENT,
                "Content-Type": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def _get_all_pages(self, path: str, key: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Follow Harvest pagination until links.next is empty.

        Raises:
            NetworkError: If any page request fails.
        """
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            try:
                response = await self.client.get(path, params={**params, "page": page})
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise NetworkError(f"Harvest request {path} page {page} failed: {e}") from e

            items.extend(data.get(key, []))
            if not (data.get("links") or {}).get("next"):
                return items
            page += 1

    async def fetch_entries(self, from_date: date, to_date: date) -> list[HarvestTimeEntry]:
        """Fetch all time entries in a date range.

        Args:
            from_date: First day (inclusive).
            to_date: Last day (inclusive).

        Returns:
            List of time entries across all pages.

        Raises:
            NetworkError: If the API request fails or returns malformed data.
        """
        self.logger.info(f"Fetching Harvest time entries from {from_date} to {to_date}")
        raw = await self._get_all_pages(
            "/time_entries",
            "time_entries",
            {"from": from_date.isoformat(), "to": to_date.isoformat()},
        )
        try:
            entries = [HarvestTimeEntry.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise NetworkError(f"Harvest returned a malformed time entry: {e}") from e
        self.logger.info(f"Retrieved {len(entries)} time entries from Harvest")
        return entries

    async def fetch_tasks(self) -> list[HarvestTask]:
        """Fetch all tasks.

        Returns:
            List of tasks across all pages.

        Raises:
            NetworkError: If the API request fails.
        """
        self.logger.info("Fetching Harvest tasks")
        raw = await self._get_all_pages("/tasks", "tasks", {})

        tasks = []
        for index, item in enumerate(raw):
            try:
                tasks.append(HarvestTask.model_validate(item))
            except PydanticValidationError as e:
                self.logger.warning(f"Skipping Harvest task at index {index}: {e}")
        self.logger.info(f"Retrieved {len(tasks)} tasks from Harvest")
        return tasks

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "HarvestClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        await self.close()
