"""Webhook routes for platforms."""
import logging
from typing import Callable, Optional
from fastapi import APIRouter, Request, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from core.dispatcher import DriverManager, DispatchResult, DriverState
from middleware.logging import log_request, generate_request_id
from middleware.security import verify_webhook_signature
from models.messages import IncomingMessage
from platforms.base import Reply
from platforms.exceptions import UpstreamFetchFailed

logger = logging.getLogger(__name__)

router = APIRouter()

# Drivers
driver_manager = DriverManager()

# Conversation hook: (result, message or None for events) -> reply or None
ReplyHandler = Callable[[DispatchResult, Optional[IncomingMessage]], Optional[Reply]]
reply_handler: Optional[ReplyHandler] = None


def set_reply_handler(handler: Optional[ReplyHandler]):
    """Register the function that decides what to answer."""
    global reply_handler
    reply_handler = handler


def send_reply(result: DispatchResult, reply: Reply, message: Optional[IncomingMessage] = None) -> DispatchResult:
    """Send one reply; a failed delivery leaves the result unchanged."""
    try:
        return driver_manager.reply(result, reply, matching_message=message)
    except UpstreamFetchFailed as e:
        logger.warning(f"[{result.driver_name}] Reply to {message.sender if message else 'event'} failed: {e}")
        return result


def handle(body: bytes, headers: dict, drivers=None) -> DispatchResult:
    """
    Dispatch a webhook and send the replies the reply handler produces.

    Runs synchronously; the routes call it from the threadpool. A failed
    delivery is logged and the remaining messages are still answered.
    """
    result = driver_manager.dispatch(body, headers, drivers)

    if reply_handler is None or not result.matched:
        return result

    if result.state is DriverState.EVENT_ONLY:
        reply = reply_handler(result, None)
        if reply is not None:
            result = send_reply(result, reply)
        return result

    for message in result.messages:
        if message.is_empty():
            continue
        reply = reply_handler(result, message)
        if reply is not None:
            result = send_reply(result, reply, message)

    return result


def respond(request_id: str, result: DispatchResult) -> dict:
    first = result.messages[0] if result.messages else IncomingMessage.empty()
    log_request(
        request_id,
        result.driver_name,
        result.state.value,
        sender=first.sender,
        message=first.text,
        event=result.event.name if result.event else None
    )
    return {"status": "ok", "driver": result.driver_name, "state": result.state.value}


@router.get("/webhook/facebook", response_class=PlainTextResponse)
async def facebook_webhook_verify(
    mode: str = Query(..., alias="hub.mode"),
    token: str = Query(..., alias="hub.verify_token"),
    challenge: str = Query(..., alias="hub.challenge")
):
    """Facebook webhook verification (GET)."""
    driver = driver_manager.get_driver("facebook")
    result = driver.verify_webhook(mode, token, challenge) if driver else None
    if result is not None:
        return result
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook")
async def webhook(request: Request):
    """Webhook handler probing every configured driver (POST)."""
    request_id = generate_request_id()
    body = await request.body()
    result = await run_in_threadpool(handle, body, dict(request.headers))
    return respond(request_id, result)


@router.post("/webhook/{platform}")
async def platform_webhook(platform: str, request: Request):
    """
    Webhook handler for one platform (POST).

    Unlike /webhook, a bad signature is rejected with 401.
    """
    request_id = generate_request_id()
    drivers = [
        driver for driver in driver_manager.drivers
        if driver.NAME.lower().startswith(platform.lower())
    ]
    if not drivers:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}")

    body = await request.body()
    headers = dict(request.headers)
    verify_webhook_signature(body, headers, getattr(drivers[0], "app_secret", None))

    result = await run_in_threadpool(handle, body, headers, drivers)
    return respond(request_id, result)
