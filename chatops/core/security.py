"""Request authentication for the chat endpoint and the admin routes.

Two chat transports are supported:

- ``bot_framework``: requests carry ``Authorization: Bearer <jwt>`` issued by
  the Bot Connector service. The token is checked against the connector's
  signing keys, the app id (audience) and the issuer, and its ``serviceUrl``
  claim must match the activity.
- ``outgoing_webhook``: requests carry ``Authorization: HMAC <base64>`` computed
  over the raw body with the shared secret. Teams only calls outgoing webhooks
  for messages that mention the bot, so plain context messages never arrive
  and create commands have no cached context to work from.

Nothing is accepted until the selected transport has its credentials.
"""

import base64
import binascii
import hashlib
import hmac
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from fastapi import Header, HTTPException, status
import structlog

from chatops.config.settings import Settings, settings
from chatops.core.exceptions import InvalidChannelTokenError

logger = structlog.get_logger()


def chat_transport_configured(config: Settings) -> bool:
    if config.chat_transport == "outgoing_webhook":
        return bool(config.teams_webhook_secret)
    return bool(config.microsoft_app_id and config.microsoft_app_password)


def compute_webhook_signature(secret: str, body: bytes) -> str:
    """Teams outgoing webhook signature: base64(HMAC-SHA256(base64decode(secret), body))"""
    key = base64.b64decode(secret)
    digest = hmac.new(key, body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(secret: str, body: bytes, authorization: Optional[str]) -> bool:
    if not secret:
        raise ValueError("Webhook secret is not configured")
    if not authorization or not authorization.startswith("HMAC "):
        return False
    try:
        expected = compute_webhook_signature(secret, body)
    except (binascii.Error, ValueError) as e:
        logger.error("Webhook secret is not valid base64", error=str(e))
        return False
    return hmac.compare_digest(expected, authorization[len("HMAC "):].strip())


class BotFrameworkTokenVerifier:
    """Verifies Bot Connector bearer tokens (RS256, keys from the connector JWKS)"""

    def __init__(self, app_id: str, issuer: str, jwks_url: str, jwks_client: Optional[Any] = None):
        self.app_id = app_id
        self.issuer = issuer
        self._jwks_client = jwks_client or PyJWKClient(jwks_url)

    def verify(self, authorization: Optional[str], service_url: Optional[str]) -> Dict[str, Any]:
        """Return the token claims; raises InvalidChannelTokenError.

        Blocking: the first call per key id fetches the signing keys over HTTP.
        """
        if not authorization or not authorization.startswith("Bearer "):
            raise InvalidChannelTokenError("Missing bearer token")
        token = authorization[len("Bearer "):].strip()

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.app_id,
                issuer=self.issuer,
                leeway=300,
            )
        except jwt.PyJWTError as e:
            raise InvalidChannelTokenError(str(e)) from e

        claimed_url = claims.get("serviceurl") or claims.get("serviceUrl")
        if claimed_url and service_url and claimed_url.rstrip("/") != service_url.rstrip("/"):
            raise InvalidChannelTokenError("serviceUrl claim does not match the activity")
        return claims


def require_admin_key(x_admin_key: Optional[str] = Header(None)) -> None:
    """FastAPI dependency guarding the channel binding routes"""
    if not settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is disabled",
        )
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.admin_api_key):
        logger.warning("Rejected admin request with invalid key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )
