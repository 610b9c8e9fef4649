"""Fermentation logs, tasting notes and packaging schedules.

Records are always reached through their batch, and the batch is always
looked up by id *and* organization id, so a record id from another
organization resolves to 404 exactly like a missing one.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Optional

from dateutil.parser import isoparse
from flask import current_app
from flask_babel import gettext as _

from .. import db
from ..batches.service import get_batch
from ..auth.permissions import require_member
from ..errors import NotFound, ValidationFailed, commit_or_raise
from ..models import Batch, FermentationLog, PackagingSchedule, TastingNote, utcnow


def parse_date_arg(value: Optional[str], name: str) -> Optional[date]:
    """Parse a ``since``/``until`` query value. Empty means no bound."""
    if not value:
        return None
    try:
        return isoparse(value).date()
    except (ValueError, OverflowError):
        raise ValidationFailed({name: [_("Not a valid ISO date.")]})


def _get_record(model, batch: Batch, record_id: int):
    record = model.query.filter_by(id=record_id, batch_id=batch.id).first()
    if record is None:
        raise NotFound()
    return record


def _list_dated(model, batch: Batch, since: Optional[date], until: Optional[date]) -> list:
    q = model.query.filter(model.batch_id == batch.id)
    if since is not None:
        q = q.filter(model.recorded_at >= since)
    if until is not None:
        q = q.filter(model.recorded_at <= until)
    return q.order_by(model.recorded_at.desc(), model.id.desc()).all()


def _create(model, batch: Batch, user_id: int, fields: dict[str, Any]):
    if "recorded_at" in fields and fields["recorded_at"] is None:
        # falls back to the column default (today)
        fields.pop("recorded_at")
    record = model(batch_id=batch.id, created_by=user_id, **fields)
    db.session.add(record)
    commit_or_raise("%s create for batch %s", model.__tablename__, batch.id)
    return record


def _update(record, fields: dict[str, Any]):
    if "recorded_at" in fields and fields["recorded_at"] is None:
        fields.pop("recorded_at")
    for key, value in fields.items():
        setattr(record, key, value)
    commit_or_raise("%s %s update", record.__tablename__, record.id)
    return record


def _delete(record) -> None:
    db.session.delete(record)
    commit_or_raise("%s %s delete", record.__tablename__, record.id)


# Fermentation logs

def list_fermentation_logs(
    organization_id: int,
    batch_id: int,
    user_id: int,
    since: Optional[date] = None,
    until: Optional[date] = None,
) -> list[FermentationLog]:
    batch = get_batch(organization_id, batch_id, user_id)
    return _list_dated(FermentationLog, batch, since, until)


def add_fermentation_log(organization_id: int, batch_id: int, user_id: int, **fields) -> FermentationLog:
    batch = get_batch(organization_id, batch_id, user_id)
    return _create(FermentationLog, batch, user_id, fields)


def update_fermentation_log(organization_id: int, batch_id: int, log_id: int, user_id: int, **fields) -> FermentationLog:
    batch = get_batch(organization_id, batch_id, user_id)
    return _update(_get_record(FermentationLog, batch, log_id), fields)


def delete_fermentation_log(organization_id: int, batch_id: int, log_id: int, user_id: int) -> None:
    batch = get_batch(organization_id, batch_id, user_id)
    _delete(_get_record(FermentationLog, batch, log_id))


# Tasting notes

def list_tasting_notes(
    organization_id: int,
    batch_id: int,
    user_id: int,
    since: Optional[date] = None,
    until: Optional[date] = None,
) -> list[TastingNote]:
    batch = get_batch(organization_id, batch_id, user_id)
    return _list_dated(TastingNote, batch, since, until)


def add_tasting_note(organization_id: int, batch_id: int, user_id: int, **fields) -> TastingNote:
    batch = get_batch(organization_id, batch_id, user_id)
    return _create(TastingNote, batch, user_id, fields)


def update_tasting_note(organization_id: int, batch_id: int, note_id: int, user_id: int, **fields) -> TastingNote:
    batch = get_batch(organization_id, batch_id, user_id)
    return _update(_get_record(TastingNote, batch, note_id), fields)


def delete_tasting_note(organization_id: int, batch_id: int, note_id: int, user_id: int) -> None:
    batch = get_batch(organization_id, batch_id, user_id)
    _delete(_get_record(TastingNote, batch, note_id))


# Packaging schedules

def list_packaging_schedules(organization_id: int, batch_id: int, user_id: int) -> list[PackagingSchedule]:
    batch = get_batch(organization_id, batch_id, user_id)
    return (
        PackagingSchedule.query.filter_by(batch_id=batch.id)
        .order_by(PackagingSchedule.target_date.asc(), PackagingSchedule.id.asc())
        .all()
    )


def add_packaging_schedule(organization_id: int, batch_id: int, user_id: int, **fields) -> PackagingSchedule:
    batch = get_batch(organization_id, batch_id, user_id)
    return _create(PackagingSchedule, batch, user_id, fields)


def update_packaging_schedule(
    organization_id: int, batch_id: int, schedule_id: int, user_id: int, **fields
) -> PackagingSchedule:
    batch = get_batch(organization_id, batch_id, user_id)
    schedule = _get_record(PackagingSchedule, batch, schedule_id)
    if schedule.target_date != fields.get("target_date", schedule.target_date):
        # reminders are sent again for the new date
        schedule.reminder_sent_at = None
    return _update(schedule, fields)


def delete_packaging_schedule(organization_id: int, batch_id: int, schedule_id: int, user_id: int) -> None:
    batch = get_batch(organization_id, batch_id, user_id)
    _delete(_get_record(PackagingSchedule, batch, schedule_id))


def complete_packaging(organization_id: int, batch_id: int, schedule_id: int, user_id: int) -> PackagingSchedule:
    """Stamp ``completed_at``. Completing twice keeps the first timestamp."""
    batch = get_batch(organization_id, batch_id, user_id)
    schedule = _get_record(PackagingSchedule, batch, schedule_id)
    if schedule.completed_at is not None:
        return schedule
    schedule.completed_at = utcnow()
    commit_or_raise("packaging schedule %s completion", schedule_id)
    current_app.logger.info("Packaging schedule %s completed by user %s", schedule_id, user_id)
    return schedule


def upcoming_packaging(organization_id: int, user_id: int) -> list[tuple[PackagingSchedule, Batch]]:
    """Pending schedules across the organization, soonest first (overdue included)."""
    require_member(organization_id, user_id)
    return (
        db.session.query(PackagingSchedule, Batch)
        .join(Batch, Batch.id == PackagingSchedule.batch_id)
        .filter(Batch.organization_id == organization_id, PackagingSchedule.completed_at.is_(None))
        .order_by(PackagingSchedule.target_date.asc(), PackagingSchedule.id.asc())
        .all()
    )
