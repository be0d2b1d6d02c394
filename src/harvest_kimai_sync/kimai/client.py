"""Kimai API client."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from harvest_kimai_sync.exceptions import NetworkError
from harvest_kimai_sync.kimai.models import KimaiActivity, KimaiTimesheet


class KimaiClient:
    """Async client for the Kimai REST API."""

    def __init__(
        self,
        url: str,
        token: str,
        logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Kimai client.

        Args:
            url: Kimai base URL, without the /api suffix.
            token: Kimai API token.
            logger: Logger to report progress to.
            transport: Optional httpx transport, used by tests.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/api",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    async def fetch_activities(self) -> list[KimaiActivity]:
        """Fetch all visible activities.

        Returns:
            List of activities.

        Raises:
            NetworkError: If the API request fails or returns malformed data.
        """
        self.logger.info("Fetching activities from Kimai")
        try:
            response = await self.client.get("/activities", params={"visible": 1})
            response.raise_for_status()
            data = response.json()
            activities = [KimaiActivity.model_validate(item) for item in data]
        except (httpx.HTTPError, ValueError, PydanticValidationError) as e:
            raise NetworkError(f"Fetching Kimai activities failed: {e}") from e

        self.logger.info(f"Retrieved {len(activities)} activities from Kimai")
        return activities

    async def push_entry(self, timesheet: KimaiTimesheet) -> KimaiTimesheet:
        """Create a timesheet entry.

        Args:
            timesheet: Entry to create.

        Returns:
            Created entry with ID.

        Raises:
            NetworkError: If the API request fails.
        """
        self.logger.debug(f"Creating Kimai timesheet starting {timesheet.begin.isoformat()}")
        try:
            response = await self.client.post("/timesheets", json=timesheet.to_api_dict())
            response.raise_for_status()
            result = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkError(f"Creating Kimai timesheet failed: {e}") from e

        if not isinstance(result, dict) or result.get("id") is None:
            raise NetworkError(f"Kimai did not return a timesheet ID: {result!r}")

        timesheet.id = int(result["id"])
        return timesheet

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "KimaiClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        await self.close()
