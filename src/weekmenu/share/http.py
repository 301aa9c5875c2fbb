"""HTTP client for a remote snapshot share service."""

from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from weekmenu.config import get_settings
from weekmenu.logging_config import get_logger
from weekmenu.schemas import ShareSnapshotInput, ShareSnapshotResult
from weekmenu.share.base import ShareCollaborator, ShareError

logger = get_logger(__name__)

# Failures where the request never reached the server
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class HttpShareClient(ShareCollaborator):
    """Publishes snapshots by POSTing them to the share service."""

    DEFAULT_TIMEOUT = 10.0
    BACKOFF_MAX = 10

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.share_api_url).rstrip("/")
        self.api_token = api_token if api_token is not None else settings.share_api_token
        self.timeout = timeout or settings.share_timeout or self.DEFAULT_TIMEOUT
        self.max_retries = max_retries or settings.share_max_retries
        self.backoff_base = backoff_base
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    @property
    def available(self) -> bool:
        return bool(self.base_url)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {
                "Accept": "application/json",
                "User-Agent": "Weekmenu/1.0",
            }
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _post(self, url: str, body: dict[str, Any]) -> httpx.Response:
        """
        Send the POST. Only connection failures are retried, since
        after a read timeout the server may already have stored the snapshot.
        """
        client = await self._get_client()

        @retry(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff_base, max=self.BACKOFF_MAX),
            reraise=True,
        )
        async def _do_request() -> httpx.Response:
            return await client.post(url, json=body)

        try:
            return await _do_request()
        except RETRYABLE_ERRORS as e:
            logger.error(f"Share request failed after {self.max_retries} attempts: {url}")
            raise ShareError(
                f"Share service unreachable after {self.max_retries} attempts",
                response=str(e),
            ) from e
        except httpx.TransportError as e:
            logger.error(f"Share request to {url} failed: {e}")
            raise ShareError(f"Share request failed: {e}", response=str(e)) from e

    async def publish(
        self,
        household_id: str,
        user_id: str,
        payload: ShareSnapshotInput,
    ) -> ShareSnapshotResult:
        url = f"{self.base_url}/snapshots"
        body = {
            "householdId": household_id,
            "createdBy": user_id,
            **payload.to_wire(),
        }

        response = await self._post(url, body)

        if response.status_code >= 400:
            error_detail = response.text[:500] if response.text else "No details"
            logger.error(f"Share service error {response.status_code}: {error_detail}")
            raise ShareError(
                f"Share service rejected the snapshot with status {response.status_code}",
                status_code=response.status_code,
                response=error_detail,
            )

        try:
            result = ShareSnapshotResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unexpected share service response: {e}")
            raise ShareError(
                "Share service returned an unexpected response",
                status_code=response.status_code,
                response=response.text[:500],
            ) from e

        if not result.title:
            result = result.model_copy(update={"title": payload.title})

        logger.info(f"Published snapshot {result.token} with {len(payload.items)} items")
        return result
