import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import structlog

from chatops.repositories.interfaces.chat_connector import IChatConnector
from chatops.models.schemas import ChatActivity
from chatops.core.exceptions import ReplyDeliveryError
from chatops.config.settings import settings

logger = structlog.get_logger()

# Refresh the connector token this many seconds before it expires
_TOKEN_EXPIRY_MARGIN = 60


class BotFrameworkConnector(IChatConnector):
    """Posts replies to the Bot Connector REST API of the activity's serviceUrl"""

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_password: Optional[str] = None,
        token_url: Optional[str] = None,
        token_scope: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock=time.monotonic,
    ):
        self.app_id = app_id if app_id is not None else settings.microsoft_app_id
        self.app_password = app_password if app_password is not None else settings.microsoft_app_password
        self.token_url = token_url or settings.bot_token_url
        self.token_scope = token_scope or settings.bot_token_scope
        self.timeout = timeout if timeout is not None else settings.domain_api_timeout_seconds
        self._transport = transport
        self._clock = clock
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    async def send_reply(self, activity: ChatActivity, text: str) -> None:
        if not activity.service_url:
            raise ReplyDeliveryError("activity has no serviceUrl")
        if not activity.conversation or not activity.conversation.id:
            raise ReplyDeliveryError("activity has no conversation id")

        url = self.reply_url(activity)
        token = await self._access_token()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=self._reply_payload(activity, text),
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            logger.error("Reply delivery failed", url=url, error=str(e))
            raise ReplyDeliveryError(str(e)) from e

        if response.status_code >= 300:
            logger.error("Bot Connector rejected reply", url=url, status_code=response.status_code)
            raise ReplyDeliveryError(f"HTTP {response.status_code}", status_code=response.status_code)

        logger.info("Reply delivered", conversation_id=activity.conversation.id)

    @staticmethod
    def reply_url(activity: ChatActivity) -> str:
        conversation_id = quote(activity.conversation.id, safe="")
        return f"{activity.service_url.rstrip('/')}/v3/conversations/{conversation_id}/activities"

    @staticmethod
    def _reply_payload(activity: ChatActivity, text: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": "message",
            "text": text,
            "textFormat": "markdown",
            "conversation": {"id": activity.conversation.id},
        }
        if activity.id:
            payload["replyToId"] = activity.id
        if activity.recipient:
            payload["from"] = {"id": activity.recipient.id, "name": activity.recipient.name}
        if activity.from_:
            payload["recipient"] = {"id": activity.from_.id, "name": activity.from_.name}
        return payload

    async def _access_token(self) -> str:
        if self._token and self._clock() < self._token_expires_at:
            return self._token

        form = {
            "grant_type": "client_credentials",
            "client_id": self.app_id or "",
            "client_secret": self.app_password or "",
            "scope": self.token_scope,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.token_url, data=form)
        except httpx.HTTPError as e:
            logger.error("Bot token request failed", error=str(e))
            raise ReplyDeliveryError(f"token request failed: {e}") from e

        if response.status_code >= 400:
            logger.error("Bot token request rejected", status_code=response.status_code)
            raise ReplyDeliveryError("token request rejected", status_code=response.status_code)

        try:
            body = response.json()
            token = body["access_token"]
            expires_in = float(body.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as e:
            raise ReplyDeliveryError("token response is malformed") from e

        self._token = token
        self._token_expires_at = self._clock() + max(expires_in - _TOKEN_EXPIRY_MARGIN, 0)
        return token
