"""
Expo Push Service

DESIGN DECISION: Mobile clients register an Expo push token, so pushes go
through Expo's HTTP API instead of talking to APNs/FCM directly:
1. One endpoint for both platforms
2. No credentials needed for the basic send API
3. The token is all the server has to store

Transport errors are retried with tenacity. An explicit error ticket from
Expo is not retried: the token or payload is wrong and will stay wrong.
"""

from typing import Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.config import get_settings
from expense_tracker.services.push.interface import (
    NotificationDispatchError,
    PushSender,
)


logger = structlog.get_logger(__name__)


class ExpoPushService(PushSender):
    """
    Push sender backed by the Expo push API.

    Args:
        client: Optional httpx.AsyncClient. Injected by tests with a
            MockTransport; created per call otherwise.
        wait: tenacity wait strategy between attempts.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        wait=None,
    ):
        self._settings = get_settings().push
        self._client = client
        self._wait = wait or wait_exponential(multiplier=0.5, min=0.5, max=5)

    def _payload(self, token: str, title: str, body: str) -> dict:
        return {
            "to": token,
            "sound": self._settings.sound,
            "title": title,
            "body": body,
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        response = await client.post(
            self._settings.endpoint,
            json=payload,
            headers={"Accept": "application/json"},
            timeout=self._settings.timeout_seconds,
        )
        response.raise_for_status()
        return response

    async def _send_with_retry(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=self._wait,
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await self._post(client, payload)

    async def send(self, token: str, title: str, body: str) -> None:
        """
        Post one notification to Expo.

        Silently skipped when push is disabled or the user has no token.

        Raises:
            NotificationDispatchError: On transport failure after retries,
                a non-2xx response or an Expo error ticket
        """
        if not self._settings.enabled or not token:
            logger.debug("push_skipped", enabled=self._settings.enabled, has_token=bool(token))
            return

        payload = self._payload(token, title, body)

        try:
            if self._client is not None:
                response = await self._send_with_retry(self._client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._send_with_retry(client, payload)
        except (httpx.HTTPError, RetryError) as e:
            raise NotificationDispatchError(f"Expo push failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise NotificationDispatchError(f"Unreadable Expo response: {e}") from e

        if not isinstance(body, dict):
            raise NotificationDispatchError(
                f"Unexpected Expo response: {type(body).__name__}"
            )
        ticket = body.get("data", {})

        # Single-message sends return one ticket object
        if isinstance(ticket, dict) and ticket.get("status") == "error":
            raise NotificationDispatchError(
                f"Expo rejected push: {ticket.get('message', 'unknown error')}"
            )

        logger.info("push_sent", title=title)
