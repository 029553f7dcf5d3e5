"""Base client module for Jira Cloud API interactions."""

import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

import anyio
import httpx

from .config import JiraConfig
from .executor import RequestExecutor, RetryPolicy
from .field_catalog import FieldCatalog

# Configure logging
logger = logging.getLogger("mcp-jira-cloud.jira.client")


class JiraClient:
    """Base client for Jira Cloud API interactions.

    All HTTP traffic goes through a :class:`RequestExecutor`; mixins call
    :meth:`request` and never touch the ``httpx`` client directly.
    """

    def __init__(
        self,
        config: JiraConfig | None = None,
        *,
        field_catalog: FieldCatalog | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = anyio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the Jira client with a given configuration.

        Args:
            config: Jira configuration object. If None, will be loaded from environment variables.
            field_catalog: Shared field catalog. A private one is created when omitted.
            http_client: Pre-built HTTP client (tests pass one with a mock transport).
            sleep: Backoff sleep function.
            rng: Random source for backoff jitter.
        """
        if config is None:
            self.config = JiraConfig.from_env()
        else:
            self.config = config

        self.http = http_client or httpx.AsyncClient(
            base_url=self.config.url,
            auth=httpx.BasicAuth(self.config.username, self.config.api_token),
            headers={"Accept": "application/json"},
            timeout=self.config.timeout,
            verify=self.config.ssl_verify,
            follow_redirects=True,
        )
        self.executor = RequestExecutor(
            self.http,
            RetryPolicy(
                max_attempts=self.config.max_attempts,
                base_delay=self.config.retry_base_delay,
                max_delay=self.config.retry_max_delay,
                max_retry_after=self.config.max_retry_after,
            ),
            sleep=sleep,
            rng=rng,
        )
        self.field_catalog = field_catalog or FieldCatalog(
            ttl=self.config.field_cache_ttl,
            overrides=self.config.field_overrides,
        )

        # Cache for frequently used data
        self._current_user_account_id: str | None = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        idempotent: bool | None = None,
    ) -> Any:
        """Send a request through the executor.

        Args:
            method: HTTP method
            path: Path relative to the site URL, e.g. ``/rest/api/3/myself``
            params: Query parameters
            json: JSON body
            idempotent: Override the method-derived idempotency flag

        Returns:
            Parsed JSON body, or None for empty responses
        """
        request = self.executor.new_request(
            method, path, params=params, body=json, idempotent=idempotent
        )
        response = await self.executor.execute(request)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug(f"Non-JSON response from {request.describe()}")
            return response.text

    async def get_current_user_account_id(self) -> str:
        """Get the account ID of the authenticated user.

        Returns:
            Account ID string
        """
        if self._current_user_account_id is None:
            myself = await self.request("GET", "/rest/api/3/myself")
            account_id = (myself or {}).get("accountId")
            if not account_id:
                raise ValueError("Could not determine the current user's account ID")
            self._current_user_account_id = account_id
        return self._current_user_account_id

    async def aclose(self) -> None:
        await self.http.aclose()
