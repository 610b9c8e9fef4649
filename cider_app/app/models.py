from __future__ import annotations
from datetime import date, datetime
from typing import Any
from dateutil.tz import tzutc
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from . import db


def utcnow() -> datetime:
    # stored as naive UTC, same convention on SQLite and PostgreSQL
    return datetime.now(tzutc()).replace(tzinfo=None)


def _iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat() + "Z"
    return value.isoformat()


def _num(value) -> float | None:
    return float(value) if value is not None else None


ROLES = ("owner", "admin", "member")
TEAM_SIZES = ("small", "medium", "large")
STAGES = ("pressing", "fermenting", "aging", "bottled")
PACKAGING_FORMATS = ("bottle", "can", "keg", "bag-in-box", "growler", "other")


def _in_check(column: str, values: tuple[str, ...], name: str) -> db.CheckConstraint:
    quoted = ", ".join(f"'{v}'" for v in values)
    return db.CheckConstraint(f"{column} IN ({quoted})", name=name)


class User(UserMixin, db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(100), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    membership = db.relationship(
        "OrganizationMember", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict[str, Any]:
        membership = self.membership
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "created_at": _iso(self.created_at),
            "membership": membership.to_dict() if membership else None,
        }


class Organization(db.Model):
    __tablename__ = "organizations"
    __table_args__ = (_in_check("team_size", TEAM_SIZES, "ck_organizations_team_size"),)
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_size = db.Column(db.String(16), nullable=False, default="small", server_default="small")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = db.relationship("User", foreign_keys=[owner_id])
    memberships = db.relationship(
        "OrganizationMember", back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )
    batches = db.relationship(
        "Batch", back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )
    invitations = db.relationship(
        "Invitation", back_populates="organization", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "team_size": self.team_size,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class OrganizationMember(db.Model):
    __tablename__ = "organization_members"
    __table_args__ = (
        # one organization per user
        db.UniqueConstraint("user_id", name="uq_organization_members_user_id"),
        _in_check("role", ROLES, "ck_organization_members_role"),
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    role = db.Column(db.String(20), nullable=False, default="member")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship("User", back_populates="membership")
    organization = db.relationship("Organization", back_populates="memberships")

    def to_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "user_id": self.user_id,
            "role": self.role,
            "created_at": _iso(self.created_at),
        }


class Invitation(db.Model):
    __tablename__ = "invitations"
    __table_args__ = (_in_check("role", ("admin", "member"), "ck_invitations_role"),)
    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = db.Column(db.String(255), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="member")
    invited_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    accepted_at = db.Column(db.DateTime, nullable=True)

    organization = db.relationship("Organization", back_populates="invitations")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "email": self.email,
            "role": self.role,
            "invited_by": self.invited_by,
            "created_at": _iso(self.created_at),
            "accepted_at": _iso(self.accepted_at),
        }


class Batch(db.Model):
    __tablename__ = "batches"
    __table_args__ = (
        _in_check("current_stage", STAGES, "ck_batches_current_stage"),
        db.CheckConstraint("volume > 0", name="ck_batches_volume_positive"),
    )
    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(200), nullable=False)
    variety = db.Column(db.String(200), nullable=False)
    volume = db.Column(db.Numeric(10, 2), nullable=False)
    current_stage = db.Column(db.String(16), nullable=False, default="pressing", server_default="pressing")
    start_date = db.Column(db.Date, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organization = db.relationship("Organization", back_populates="batches")
    fermentation_logs = db.relationship(
        "FermentationLog", back_populates="batch", cascade="all, delete-orphan", passive_deletes=True
    )
    tasting_notes = db.relationship(
        "TastingNote", back_populates="batch", cascade="all, delete-orphan", passive_deletes=True
    )
    packaging_schedules = db.relationship(
        "PackagingSchedule", back_populates="batch", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "variety": self.variety,
            "volume": _num(self.volume),
            "current_stage": self.current_stage,
            "start_date": _iso(self.start_date),
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class FermentationLog(db.Model):
    __tablename__ = "fermentation_logs"
    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    recorded_at = db.Column(db.Date, nullable=False, default=date.today)
    temperature = db.Column(db.Numeric(5, 2), nullable=True)
    specific_gravity = db.Column(db.Numeric(6, 3), nullable=True)
    ph = db.Column(db.Numeric(4, 2), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    batch = db.relationship("Batch", back_populates="fermentation_logs")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "recorded_at": _iso(self.recorded_at),
            "temperature": _num(self.temperature),
            "specific_gravity": _num(self.specific_gravity),
            "ph": _num(self.ph),
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }


class TastingNote(db.Model):
    __tablename__ = "tasting_notes"
    __table_args__ = (
        db.CheckConstraint("sweetness BETWEEN 1 AND 5", name="ck_tasting_notes_sweetness"),
        db.CheckConstraint("acidity BETWEEN 1 AND 5", name="ck_tasting_notes_acidity"),
        db.CheckConstraint("body BETWEEN 1 AND 5", name="ck_tasting_notes_body"),
    )
    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    recorded_at = db.Column(db.Date, nullable=False, default=date.today)
    sweetness = db.Column(db.Integer, nullable=True)
    acidity = db.Column(db.Integer, nullable=True)
    body = db.Column(db.Integer, nullable=True)
    aroma = db.Column(db.Text, nullable=True)
    flavor = db.Column(db.Text, nullable=True)
    finish = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    batch = db.relationship("Batch", back_populates="tasting_notes")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "recorded_at": _iso(self.recorded_at),
            "sweetness": self.sweetness,
            "acidity": self.acidity,
            "body": self.body,
            "aroma": self.aroma,
            "flavor": self.flavor,
            "finish": self.finish,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }


class PackagingSchedule(db.Model):
    __tablename__ = "packaging_schedules"
    __table_args__ = (
        _in_check("format", PACKAGING_FORMATS, "ck_packaging_schedules_format"),
        db.CheckConstraint("quantity >= 0", name="ck_packaging_schedules_quantity"),
    )
    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    target_date = db.Column(db.Date, nullable=False, index=True)
    format = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    # set once by the reminder job
    reminder_sent_at = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    batch = db.relationship("Batch", back_populates="packaging_schedules")

    @property
    def is_pending(self) -> bool:
        return self.completed_at is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "target_date": _iso(self.target_date),
            "format": self.format,
            "quantity": self.quantity,
            "notes": self.notes,
            "completed_at": _iso(self.completed_at),
            "pending": self.is_pending,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }
