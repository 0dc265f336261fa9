"""YNAB REST API client fetching whole-budget snapshots."""

import logging
from typing import Any

import httpx

from .config import DEFAULT_API_URL
from .errors import DataFetchError
from .models import BudgetSnapshot, snapshot_from_api


logger = logging.getLogger(__name__)


class YnabClient:
    """Fetches budget snapshots from the YNAB API."""

    def __init__(self, token: str, base_url: str = DEFAULT_API_URL, timeout: float = 30.0):
        """Initialize the client.

        Args:
            token: YNAB personal access token.
            base_url: API root, without a trailing slash.
            timeout: Request timeout in seconds.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch_budget_snapshot(self, budget_id: str) -> BudgetSnapshot:
        """Fetch a full budget export and decode it.

        Args:
            budget_id: Budget id, or "last-used".

        Returns:
            Decoded BudgetSnapshot.

        Raises:
            DataFetchError: If the request fails, the API returns an error
                status, or the payload cannot be decoded.
        """
        url = f"{self.base_url}/budgets/{budget_id}"
        logger.info("Fetching budget %s", budget_id)

        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.token}",
                        "Accept": "application/json",
                    },
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                logger.warning("HTTP error fetching budget %s: %s", budget_id, e)
                raise DataFetchError(f"HTTP error fetching budget: {e}") from e

        if response.status_code != 200:
            logger.warning("YNAB API returned status %s for budget %s", response.status_code, budget_id)
            raise DataFetchError(
                f"YNAB API returned status {response.status_code}: {_error_detail(response)}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DataFetchError(f"Invalid JSON response: {e}") from e

        try:
            budget = payload["data"]["budget"]
        except (KeyError, TypeError) as e:
            raise DataFetchError("Response has no data.budget object") from e

        snapshot = snapshot_from_api(budget)
        logger.info(
            "Fetched budget %s: %d accounts, %d categories, %d transactions",
            snapshot.budget.name,
            len(snapshot.accounts),
            len(snapshot.categories),
            len(snapshot.transactions),
        )
        return snapshot


def _error_detail(response: httpx.Response) -> str:
    # YNAB errors look like {"error": {"id": "401", "name": "unauthorized", "detail": "..."}}
    try:
        error: Any = response.json().get("error") or {}
        return error.get("detail") or error.get("name") or response.text
    except (ValueError, AttributeError):
        return response.text
