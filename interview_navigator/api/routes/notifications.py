from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from interview_navigator.api import deps
from interview_navigator.schemas.user import UserContext
from interview_navigator.services.event_bus import event_bus

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/stream")
async def stream_notifications(
    request: Request,
    user: UserContext = Depends(deps.get_user),
):
    queue = await event_bus.subscribe(user.user_id)

    async def event_generator():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=15)
                except asyncio.TimeoutError:
                    yield "event: ping\ndata: {}\n\n"
                    continue
                yield f"data: {data}\n\n"
        finally:
            await event_bus.unsubscribe(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
