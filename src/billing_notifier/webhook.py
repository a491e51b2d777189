import json

import httpx
import structlog

from billing_notifier.errors import DeliveryFailed
from billing_notifier.models import ChatMessage

logger = structlog.get_logger()


class SlackWebhook:
    """
    SlackWebhook posts a ChatMessage to a Slack incoming webhook. The
    status code is only evaluated once the whole response body has been
    read.
    """

    def __init__(self, url: "str", timeout: "float" = 10.0) -> "None":
        self._url = url
        self._client: "httpx.AsyncClient" = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        await self._client.aclose()

    async def deliver(self, message: "ChatMessage") -> "int":
        """
        posts the message and returns the HTTP status code. Raises
        DeliveryFailed for transport errors and for any status >= 400.
        """
        body = json.dumps(message.to_payload(), ensure_ascii=False).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
        }

        try:
            resp = await self._client.post(self._url, content=body, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailed(None, str(e)) from e

        # httpx has read the full body by the time post() returns
        logger.debug(
            "webhook_response",
            status_code=resp.status_code,
            body_length=len(resp.content),
        )
        if resp.status_code >= 400:
            raise DeliveryFailed(resp.status_code, resp.text)

        return resp.status_code
