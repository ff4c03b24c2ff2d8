# Storage Router for the LEADERS platform
# Authenticated read-through proxy for task upload files

import logging
from fastapi import APIRouter, HTTPException, Depends, Response
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User
from database.marketplace_models import Task
from auth.dependencies import get_current_user
from auth.ownership import Actor, ensure_task_viewer
from core.storage_service import StorageService, get_storage
from config.app_config import TASK_UPLOADS_BUCKET

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.get("/task-uploads/{path:path}")
async def get_task_upload(
    path: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageService = Depends(get_storage),
):
    """
    Stream a file from the task-uploads bucket.

    The first path segment is the task id; only staff, the task's creator
    and members of the campaign's brand can read it.
    """
    segments = path.split("/")
    if not path or ".." in segments or any(s == "" for s in segments):
        raise HTTPException(status_code=400, detail="Invalid path")

    task = db.query(Task).filter(Task.id == segments[0]).first()
    if not task:
        raise HTTPException(status_code=404, detail="File not found")

    ensure_task_viewer(Actor(current_user, db), task)

    obj = storage.download(TASK_UPLOADS_BUCKET, path)
    if obj is None:
        raise HTTPException(status_code=404, detail="File not found")

    return Response(
        content=obj.body,
        media_type=obj.content_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )
