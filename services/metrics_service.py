# Creator performance metrics
# Recomputed from tasks, approvals and ratings; one creator_metrics row per creator.

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from database.marketplace_models import (
    Task,
    TaskStatusDB,
    Approval,
    Rating,
    RevisionRequest,
    CreatorMetrics,
)

logger = logging.getLogger(__name__)

APPROVED_STATUSES = (TaskStatusDB.APPROVED, TaskStatusDB.PAID)


def _rating_score(rating: Rating) -> float:
    """Mean of the three scores, missing scores count as 0."""
    return ((rating.quality or 0) + (rating.on_time or 0) + (rating.communication or 0)) / 3


def calculate_creator_metrics(db: Session, creator_id: str) -> CreatorMetrics:
    """
    Recalculate and store metrics for one creator. Does not commit.

    A delivery is on time when the approval happened at or before the
    task's due date; tasks without a due date count as on time.
    Rates are percentages.
    """
    tasks = db.query(Task).filter(Task.creator_id == creator_id).all()
    task_ids = [t.id for t in tasks]
    approved = [t for t in tasks if t.status in APPROVED_STATUSES]

    ratings = []
    revised_task_ids = set()
    on_time = 0
    late = 0
    if task_ids:
        ratings = db.query(Rating).filter(Rating.task_id.in_(task_ids)).all()
        revised_task_ids = {
            r.task_id for r in db.query(RevisionRequest).filter(RevisionRequest.task_id.in_(task_ids)).all()
        }
        due_by_task = {t.id: t.due_at for t in tasks}
        approvals = db.query(Approval).filter(
            Approval.task_id.in_(task_ids),
            Approval.decision == "approved"
        ).all()
        for approval in approvals:
            due_at = due_by_task.get(approval.task_id)
            approved_at = approval.created_at or datetime.utcnow()
            if due_at is None or approved_at <= due_at:
                on_time += 1
            else:
                late += 1

    metrics = db.query(CreatorMetrics).filter(CreatorMetrics.creator_id == creator_id).first()
    if metrics is None:
        metrics = CreatorMetrics(creator_id=creator_id)
        db.add(metrics)

    total = len(tasks)
    deliveries = on_time + late
    metrics.total_tasks = total
    metrics.approved_tasks = len(approved)
    metrics.rejected_tasks = len(revised_task_ids)
    metrics.approval_rate = round(len(approved) / total * 100, 2) if total else 0.0
    metrics.average_rating = round(sum(_rating_score(r) for r in ratings) / len(ratings), 2) if ratings else 0.0
    metrics.on_time_deliveries = on_time
    metrics.late_deliveries = late
    metrics.on_time_rate = round(on_time / deliveries * 100, 2) if deliveries else 0.0
    metrics.last_updated = datetime.utcnow()

    logger.debug(f"Metrics for creator {creator_id}: {total} tasks, {len(approved)} approved")
    return metrics


def recalculate_all(db: Session) -> int:
    """Recompute metrics for every creator with at least one task. Commits."""
    creator_ids = [row[0] for row in db.query(Task.creator_id).distinct().all()]
    for creator_id in creator_ids:
        calculate_creator_metrics(db, creator_id)
    db.commit()
    return len(creator_ids)
