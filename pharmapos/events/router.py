import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from loguru import logger

from pharmapos.config import settings
from pharmapos.events.broadcaster import Broadcaster, get_broadcaster


router = APIRouter()


async def event_stream(request: Request, broadcaster: Broadcaster, keepalive: float):
    """
    Yield SSE frames for one client until it disconnects or the server
    shuts down. The subscription is released in ``finally`` so a dropped
    connection never lingers in the broadcast set.
    """
    subscription = broadcaster.subscribe()
    client = request.client.host if request.client else "unknown"
    logger.info(f"Product update stream opened for {client}")

    try:
        yield ": connected\n\n"

        while not subscription.exhausted:
            if await request.is_disconnected():
                break

            try:
                message = await asyncio.wait_for(subscription.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue

            if message is None:
                break

            yield f"data: {message}\n\n"
    finally:
        broadcaster.unsubscribe(subscription)
        logger.info(f"Product update stream closed for {client}")


@router.get("/updates")
async def product_updates(
    request: Request,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    return StreamingResponse(
        event_stream(request, broadcaster, settings.SSE_KEEPALIVE_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
