# Audit trail for workflow and admin actions
# Rows are added to the caller's session so they commit (or roll back) with the change they describe.

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from database.models import AuditLog
from core.transitions import ensure_transition

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        actor_id: Optional[str],
        entity: str,
        entity_id: Optional[str],
        action: str,
        meta: Optional[dict] = None,
    ) -> AuditLog:
        entry = AuditLog(
            actor_id=actor_id,
            entity=entity,
            entity_id=entity_id,
            action=action,
            meta=meta or {},
        )
        self.db.add(entry)
        return entry

    def transition(
        self,
        obj,
        entity: str,
        target,
        actor_id: Optional[str],
        action: Optional[str] = None,
        meta: Optional[dict] = None,
    ):
        """
        Move `obj.status` to `target` and record the change.

        Raises InvalidTransition before touching the object when the move
        is not allowed. Nothing is committed here.
        """
        before = obj.status.value if hasattr(obj.status, "value") else obj.status
        new_status = ensure_transition(entity, before, target)

        obj.status = new_status
        if hasattr(obj, "updated_at"):
            obj.updated_at = datetime.utcnow()

        details = {"from": before, "to": new_status.value}
        if meta:
            details.update(meta)
        self.log(actor_id, entity, obj.id, action or f"{entity}_{new_status.value}", details)
        logger.info(f"{entity} {obj.id}: {before} -> {new_status.value}")
        return new_status
