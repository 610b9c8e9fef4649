"""Batch operations, scoped by an explicit organization id.

Each function first checks :func:`is_organization_member` for the acting
user and then only touches rows whose ``organization_id`` matches the one
passed in.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from flask import current_app
from flask_babel import gettext as _
from sqlalchemy import func

from .. import db
from ..auth.permissions import require_member
from ..errors import NotFound, StoreError, ValidationFailed, commit_or_raise
from ..models import Batch, utcnow
from . import lifecycle

SORTS = {
    "newest": (Batch.created_at.desc(), Batch.id.desc()),
    "oldest": (Batch.created_at.asc(), Batch.id.asc()),
    "name-asc": (Batch.name.asc(),),
    "name-desc": (Batch.name.desc(),),
    "volume-high": (Batch.volume.desc(),),
    "volume-low": (Batch.volume.asc(),),
}


@dataclass
class AdvanceResult:
    batch: Batch
    advanced: bool
    previous_stage: str

    @property
    def message(self) -> str:
        if not self.advanced:
            return _("Batch is already complete.")
        return _("Batch moved to %(stage)s.", stage=self.batch.current_stage)


def list_batches(
    organization_id: int,
    user_id: int,
    query: str = "",
    stage: Optional[str] = None,
    sort: str = "newest",
) -> list[Batch]:
    require_member(organization_id, user_id)
    if stage and not lifecycle.is_valid_stage(stage):
        raise ValidationFailed({"stage": [_("Unknown stage.")]})
    if sort not in SORTS:
        raise ValidationFailed({"sort": [_("Unknown sort order.")]})
    q = Batch.query.filter(Batch.organization_id == organization_id)
    if query and query.strip():
        pattern = f"%{query.strip()}%"
        q = q.filter(Batch.name.ilike(pattern) | Batch.variety.ilike(pattern))
    if stage:
        q = q.filter(Batch.current_stage == stage)
    return q.order_by(*SORTS[sort]).all()


def batch_stats(organization_id: int, user_id: int) -> dict:
    require_member(organization_id, user_id)
    rows = (
        db.session.query(Batch.current_stage, func.count(Batch.id), func.coalesce(func.sum(Batch.volume), 0))
        .filter(Batch.organization_id == organization_id)
        .group_by(Batch.current_stage)
        .all()
    )
    by_stage = {stage: 0 for stage in lifecycle.stage_sequence()}
    total = 0
    volume = Decimal("0")
    for stage, count, stage_volume in rows:
        by_stage[stage] = count
        total += count
        volume += Decimal(str(stage_volume))
    return {
        "total_batches": total,
        "active_batches": total - by_stage.get(lifecycle.TERMINAL_STAGE, 0),
        "total_volume": float(volume),
        "by_stage": by_stage,
    }


def get_batch(organization_id: int, batch_id: int, user_id: int) -> Batch:
    require_member(organization_id, user_id)
    batch = Batch.query.filter_by(id=batch_id, organization_id=organization_id).first()
    if batch is None:
        raise NotFound()
    return batch


def create_batch(
    organization_id: int,
    user_id: int,
    name: str,
    variety: str,
    volume: Decimal,
    start_date: date,
) -> Batch:
    require_member(organization_id, user_id)
    batch = Batch(
        organization_id=organization_id,
        name=name,
        variety=variety,
        volume=volume,
        start_date=start_date,
        current_stage=lifecycle.INITIAL_STAGE,
        created_by=user_id,
    )
    db.session.add(batch)
    commit_or_raise("batch create in organization %s", organization_id)
    current_app.logger.info("Batch %s created in organization %s by user %s", batch.id, organization_id, user_id)
    return batch


def update_batch(
    organization_id: int,
    batch_id: int,
    user_id: int,
    name: str,
    variety: str,
    volume: Decimal,
    start_date: date,
) -> Batch:
    """Edit the descriptive fields. Stage only changes through :func:`advance`."""
    batch = get_batch(organization_id, batch_id, user_id)
    batch.name = name
    batch.variety = variety
    batch.volume = volume
    batch.start_date = start_date
    commit_or_raise("batch %s update", batch_id)
    return batch


def delete_batch(organization_id: int, batch_id: int, user_id: int) -> None:
    batch = get_batch(organization_id, batch_id, user_id)
    db.session.delete(batch)
    commit_or_raise("batch %s delete", batch_id)
    current_app.logger.info("Batch %s deleted from organization %s by user %s", batch_id, organization_id, user_id)


def advance(batch_id: int, organization_id: int, user_id: int) -> AdvanceResult:
    """Move a batch to the stage after its current one.

    The target stage is derived here, never taken from the caller. The write
    is conditioned on the batch still belonging to ``organization_id``.
    Advancing a bottled batch changes nothing and reports ``advanced=False``.
    """
    batch = get_batch(organization_id, batch_id, user_id)
    previous = batch.current_stage
    try:
        nxt = lifecycle.next_stage(previous)
    except ValueError:
        current_app.logger.error("Batch %s has unknown stage %r", batch_id, previous)
        raise StoreError(_("Batch has an unknown stage."))
    if nxt is None:
        return AdvanceResult(batch=batch, advanced=False, previous_stage=previous)

    updated = Batch.query.filter_by(id=batch_id, organization_id=organization_id).update(
        {"current_stage": nxt, "updated_at": utcnow()}, synchronize_session="evaluate"
    )
    if not updated:
        db.session.rollback()
        raise NotFound()
    commit_or_raise("batch %s advance", batch_id)
    current_app.logger.info("Batch %s advanced %s -> %s by user %s", batch_id, previous, nxt, user_id)
    return AdvanceResult(batch=batch, advanced=True, previous_stage=previous)
