# Realtime Router for the LEADERS platform
# Server-Sent Events stream of committed row changes on watched tables

import asyncio
import json
import logging
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.marketplace_models import Campaign, Task
from auth.dependencies import get_current_user
from auth.ownership import Actor
from services.change_feed import ChangeFeed, Subscription, change_feed, WATCHED_TABLES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])

HEARTBEAT_SECONDS = 15

# Columns a subscriber may filter on, per table
FILTER_COLUMNS = {
    "tasks": ("creator_id", "campaign_id"),
    "applications": ("creator_id", "campaign_id"),
    "payments": ("task_id",),
    "shipment_requests": ("creator_id", "campaign_id"),
    "disputes": ("task_id", "raised_by"),
    "notifications": ("user_id",),
}

SELF_COLUMNS = ("creator_id", "user_id", "raised_by")


def get_change_feed() -> ChangeFeed:
    return change_feed


def authorize_filters(db: Session, actor: Actor, table: str, filters: Dict[str, str]):
    """
    Staff may listen to anything. Everyone else must narrow the stream to
    rows they own: their own id, a campaign of their brand or a task they
    can see.
    """
    if actor.is_staff:
        return
    if not filters:
        raise HTTPException(status_code=403, detail="A filter on your own rows is required")

    for column, value in filters.items():
        if column in SELF_COLUMNS:
            allowed = value == actor.id
        elif column == "campaign_id":
            campaign = db.query(Campaign).filter(Campaign.id == value).first()
            allowed = campaign is not None and actor.owns_campaign(campaign)
        elif column == "task_id":
            task = db.query(Task).filter(Task.id == value).first()
            allowed = task is not None and actor.can_view_task(task)
        else:
            allowed = False
        if not allowed:
            raise HTTPException(status_code=403, detail=f"Not allowed to subscribe with {column}={value}")


async def event_stream(request: Request, feed: ChangeFeed, sub: Subscription):
    try:
        yield f"event: ready\ndata: {json.dumps({'table': sub.table, 'filters': sub.filters})}\n\n"
        while True:
            if await request.is_disconnected():
                break
            try:
                change = await asyncio.wait_for(sub.queue.get(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"event: change\ndata: {json.dumps(change.to_dict(), default=str)}\n\n"
    finally:
        feed.unsubscribe(sub)
        logger.debug(f"Realtime subscriber on {sub.table} closed")


@router.get("/{table}")
async def subscribe(
    table: str,
    request: Request,
    creator_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    task_id: Optional[str] = None,
    user_id: Optional[str] = None,
    raised_by: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    feed: ChangeFeed = Depends(get_change_feed),
):
    """
    Stream INSERT/UPDATE/DELETE events for one table.

    Only changes committed while the stream is open are delivered;
    clients re-read the current state after (re)connecting.
    """
    if table not in WATCHED_TABLES:
        raise HTTPException(status_code=400, detail=f"Unknown table '{table}'")

    given = {
        "creator_id": creator_id,
        "campaign_id": campaign_id,
        "task_id": task_id,
        "user_id": user_id,
        "raised_by": raised_by,
    }
    filters = {k: v for k, v in given.items() if v is not None}
    unsupported = [k for k in filters if k not in FILTER_COLUMNS[table]]
    if unsupported:
        raise HTTPException(status_code=400, detail=f"Cannot filter {table} by {', '.join(unsupported)}")

    authorize_filters(db, Actor(current_user, db), table, filters)

    sub = feed.subscribe(table, filters)
    return StreamingResponse(
        event_stream(request, feed, sub),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
