"""
Web Routes - Bridge endpoints
=============================

This module defines the HTTP endpoints the relay and operators use:
event ingestion, bot status and the trigger listing.
"""

import base64
import binascii
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.logging import get_logger
from rules.engine import Message, Sender, TargetContext
from rules.listing import render_page

logger = get_logger("web.routes")

router = APIRouter()


class IncomingEvent(BaseModel):
    """A text message or poke observed by the relay."""
    target: Literal["server", "channel", "client", "poke"]
    sender_id: int
    sender_name: str
    sender_uid: Optional[str] = None  # base64
    text: str = ""

    def to_message(self) -> Message:
        uid = None
        if self.sender_uid:
            uid = base64.b64decode(self.sender_uid, validate=True)
        return Message(
            target=TargetContext(self.target),
            sender=Sender(id=self.sender_id, name=self.sender_name, uid=uid),
            text=self.text,
        )


@router.post("/events", status_code=202)
async def receive_event(request: Request, event: IncomingEvent):
    """Queue an incoming event for the bot."""
    bot = request.app.state.bot

    try:
        message = event.to_message()
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="sender_uid is not valid base64")

    if bot.closed:
        return JSONResponse(status_code=503, content={"queued": False, "detail": "Bot is shutting down"})

    bot.submit(message)
    return {"queued": True}


@router.get("/status")
async def status(request: Request):
    """Get the bot status."""
    return request.app.state.bot.status()


@router.get("/actions")
async def list_actions(request: Request, page: int = Query(1)):
    """Get one page of the trigger listing."""
    pages = list(request.app.state.bot.state.pages)
    number = min(max(page, 1), len(pages)) if pages else 0
    return {
        "page": number,
        "pages": len(pages),
        "text": render_page(pages, page),
    }
