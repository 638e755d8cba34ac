from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
import structlog

from chatops.config.settings import settings
from chatops.core.dependencies import get_chat_connector, get_dispatcher, get_token_verifier
from chatops.core.exceptions import InvalidChannelTokenError, ReplyDeliveryError
from chatops.core.security import BotFrameworkTokenVerifier, chat_transport_configured, verify_webhook_signature
from chatops.models.schemas import ChatActivity, ChatReply
from chatops.repositories.interfaces.chat_connector import IChatConnector
from chatops.services.dispatcher import CommandDispatcher

logger = structlog.get_logger()

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/messages")
async def verify_endpoint(challenge: Optional[str] = None):
    """Echo the platform's verification challenge"""
    return {"challenge": challenge}


def _parse_activity(body: bytes) -> ChatActivity:
    try:
        return ChatActivity.model_validate_json(body)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False),
        )


@router.post(
    "/messages",
    responses={
        200: {"model": ChatReply, "description": "Reply delivered (bot_framework) or returned (outgoing_webhook)"},
        202: {"description": "Activity accepted, no reply"},
        401: {"description": "Missing or invalid credentials"},
        502: {"description": "Reply could not be delivered"},
        503: {"description": "Chat transport is not configured"},
    },
)
async def receive_message(
    request: Request,
    authorization: Optional[str] = Header(None),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
    connector: IChatConnector = Depends(get_chat_connector),
    verifier: BotFrameworkTokenVerifier = Depends(get_token_verifier),
):
    """Authenticate one chat activity, run it and deliver the bot reply, if any"""
    if not chat_transport_configured(settings):
        logger.error("Rejected chat activity: transport has no credentials", transport=settings.chat_transport)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat transport is not configured",
        )

    body = await request.body()

    if settings.chat_transport == "outgoing_webhook":
        if not verify_webhook_signature(settings.teams_webhook_secret, body, authorization):
            logger.warning("Rejected chat activity with invalid signature")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid webhook signature",
            )
        activity = _parse_activity(body)
        result = await dispatcher.handle(activity)
        if result.reply is None:
            return Response(status_code=status.HTTP_202_ACCEPTED)
        return ChatReply(text=result.reply)

    activity = _parse_activity(body)
    try:
        await run_in_threadpool(verifier.verify, authorization, activity.service_url)
    except InvalidChannelTokenError as e:
        logger.warning("Rejected chat activity with invalid token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid channel token",
        )

    result = await dispatcher.handle(activity)
    if result.reply is None:
        return Response(status_code=status.HTTP_202_ACCEPTED)

    try:
        await connector.send_reply(activity, result.reply)
    except ReplyDeliveryError as e:
        logger.error("Reply not delivered", outcome=result.outcome.value, error=e.detail)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Reply could not be delivered",
        )
    return Response(status_code=status.HTTP_200_OK)
