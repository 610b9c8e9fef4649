from __future__ import annotations
from datetime import date, timedelta

from flask import current_app
from flask_babel import gettext as _
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .mail import send_email
from .models import Batch, Organization, OrganizationMember, PackagingSchedule, User, utcnow
from .utils.pg_lock import single_instance


# Job decorator for scheduler auto-discovery
def job(**meta):
    """Mark a function as a scheduled job.

    Example:
        @job(schedule='interval', minutes=15, id='send_packaging_reminders')
        def send_packaging_reminders():
            ...
    Supported meta keys: schedule ('interval'), id, weeks, days, hours, minutes, seconds
    """

    def _decorator(fn):
        setattr(fn, "job_meta", meta)
        return fn

    return _decorator


@job(schedule="interval", hours=1, id="repair_orphan_organizations")
@single_instance("repair_orphan_organizations")
def repair_orphan_organizations() -> int:
    """Give owners of membership-less organizations their owner membership back.

    An owner who has since joined another organization is left alone; the
    organization stays visible to them through the owner-can-view rule.
    """
    orphans = Organization.query.filter(~Organization.memberships.any()).order_by(Organization.id).all()
    repaired = 0
    for org in orphans:
        if OrganizationMember.query.filter_by(user_id=org.owner_id).first() is not None:
            current_app.logger.warning(
                "repair_orphan_organizations: owner %s of organization %s belongs elsewhere, skipping",
                org.owner_id,
                org.id,
            )
            continue
        db.session.add(OrganizationMember(user_id=org.owner_id, organization_id=org.id, role="owner"))
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("repair_orphan_organizations: failed for organization %s", org.id)
            continue
        repaired += 1
        current_app.logger.info("repair_orphan_organizations: restored owner membership for organization %s", org.id)
    if not repaired:
        current_app.logger.info("repair_orphan_organizations: nothing to repair")
    return repaired


def _reminder_body(schedule: PackagingSchedule, batch: Batch, org: Organization) -> str:
    lines = [
        _("Packaging for batch '%(batch)s' in %(org)s is due on %(date)s.",
          batch=batch.name, org=org.name, date=schedule.target_date.isoformat()),
        "",
        _("Format: %(format)s", format=schedule.format),
    ]
    if schedule.quantity is not None:
        lines.append(_("Quantity: %(quantity)s", quantity=schedule.quantity))
    if schedule.notes:
        lines.append(_("Notes: %(notes)s", notes=schedule.notes))
    return "\n".join(lines) + "\n"


@job(schedule="interval", minutes=30, id="send_packaging_reminders")
@single_instance("send_packaging_reminders")
def send_packaging_reminders(today: date | None = None) -> int:
    """E-mail the organization owner about pending packaging due within the reminder window.

    Each schedule is reminded once; ``reminder_sent_at`` is stamped only after
    a successful send so failed deliveries are retried on the next run.
    """
    today = today or date.today()
    horizon = today + timedelta(days=current_app.config.get("PACKAGING_REMINDER_DAYS", 3))
    due = (
        db.session.query(PackagingSchedule, Batch, Organization, User)
        .join(Batch, Batch.id == PackagingSchedule.batch_id)
        .join(Organization, Organization.id == Batch.organization_id)
        .join(User, User.id == Organization.owner_id)
        .filter(
            PackagingSchedule.completed_at.is_(None),
            PackagingSchedule.reminder_sent_at.is_(None),
            PackagingSchedule.target_date >= today,
            PackagingSchedule.target_date <= horizon,
        )
        .order_by(PackagingSchedule.target_date)
        .limit(100)
        .all()
    )
    current_app.logger.info("send_packaging_reminders: %s schedules due by %s", len(due), horizon)
    sent = 0
    for schedule, batch, org, owner in due:
        subject = _("[%(app)s] Packaging due: %(batch)s", app=current_app.config.get("APP_NAME", "Cider Tracker"), batch=batch.name)
        if not send_email(subject, owner.email, _reminder_body(schedule, batch, org)):
            current_app.logger.error("Packaging reminder for schedule %s failed to send", schedule.id)
            continue
        schedule.reminder_sent_at = utcnow()
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to stamp reminder for schedule %s", schedule.id)
            continue
        sent += 1
        current_app.logger.info("Packaging reminder for schedule %s sent to %s", schedule.id, owner.email)
    return sent


JOBS = {
    "repair_orphan_organizations": repair_orphan_organizations,
    "send_packaging_reminders": send_packaging_reminders,
}


def run_due_jobs() -> dict[str, int | None]:
    """Run every maintenance job once. Safe to call under an advisory lock (see tasks.py)."""
    current_app.logger.info("run_due_jobs: running %s", ", ".join(JOBS))
    return {name: fn() for name, fn in JOBS.items()}
