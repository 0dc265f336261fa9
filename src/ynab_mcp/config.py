"""Environment-based configuration for the YNAB MCP server."""

import os


DEFAULT_API_URL = "https://api.ynab.com/v1"
DEFAULT_BUDGET_ID = "last-used"


class Settings:
    """Server settings read from environment variables."""

    def __init__(self, environ: dict[str, str] | None = None):
        env = os.environ if environ is None else environ

        self.api_token = env.get("YNAB_API_TOKEN", "").strip()
        self.budget_id = env.get("YNAB_BUDGET_ID", "").strip() or DEFAULT_BUDGET_ID
        self.api_url = (env.get("YNAB_API_URL", "").strip() or DEFAULT_API_URL).rstrip("/")
        self.log_level = (env.get("LOG_LEVEL", "").strip() or "INFO").upper()

        timeout = env.get("YNAB_TIMEOUT", "").strip() or "30"
        try:
            self.timeout = float(timeout)
        except ValueError:
            raise ValueError(f"YNAB_TIMEOUT must be a number of seconds, got {timeout!r}") from None
        if self.timeout <= 0:
            raise ValueError(f"YNAB_TIMEOUT must be positive, got {timeout!r}")

    def require_token(self) -> str:
        """Return the API token or fail with setup guidance."""
        if not self.api_token:
            raise ValueError(
                "YNAB_API_TOKEN environment variable is required. "
                "Create a personal access token at https://app.ynab.com/settings/developer"
            )
        return self.api_token
