"""Organization operations.

Every function takes the acting user's id explicitly; none of them reads the
session. Authorization goes through :mod:`..auth.permissions`.
"""
from __future__ import annotations

from typing import Optional

from flask import current_app
from flask_babel import gettext as _
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import SQLAlchemyError

from .. import db
from ..auth.permissions import (
    can_manage_members,
    can_manage_organization,
    get_visible_organization,
    require_member,
)
from ..errors import Conflict, Forbidden, NotFound, ValidationFailed, commit_or_raise, store_failure
from ..models import Invitation, Organization, OrganizationMember, User, utcnow


def create_organization(user_id: int, name: str, team_size: str = "small") -> Organization:
    """Create an organization and its owner membership in one transaction."""
    existing = OrganizationMember.query.filter_by(user_id=user_id).first()
    if existing is not None:
        raise Conflict(_("You already belong to an organization."))
    org = Organization(name=name, owner_id=user_id, team_size=team_size)
    try:
        db.session.add(org)
        db.session.flush()
        db.session.add(OrganizationMember(user_id=user_id, organization_id=org.id, role="owner"))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("DB error while creating organization for user %s", user_id)
        raise store_failure(exc)
    current_app.logger.info("Organization %s created by user %s", org.id, user_id)
    return org


def get_current_organization(user_id: int) -> Optional[tuple[Organization, str]]:
    """The caller's organization and role, or None before onboarding.

    Falls back to an organization the user owns without a membership row so
    an interrupted onboarding can still be found.
    """
    mem = OrganizationMember.query.filter_by(user_id=user_id).first()
    if mem is not None:
        return mem.organization, mem.role
    orphan = Organization.query.filter_by(owner_id=user_id).order_by(Organization.created_at).first()
    if orphan is not None:
        return orphan, "owner"
    return None


def update_organization(organization_id: int, user_id: int, name: str) -> Organization:
    org = get_visible_organization(organization_id, user_id)
    if not can_manage_organization(org, user_id):
        raise Forbidden(_("Only the organization owner can change its settings."))
    org.name = name
    commit_or_raise("organization %s update", organization_id)
    return org


def delete_organization(organization_id: int, user_id: int) -> None:
    """Delete the organization; memberships, batches and their records cascade."""
    org = get_visible_organization(organization_id, user_id)
    if not can_manage_organization(org, user_id):
        raise Forbidden(_("Only the organization owner can delete it."))
    db.session.delete(org)
    commit_or_raise("organization %s delete", organization_id)
    current_app.logger.info("Organization %s deleted by user %s", organization_id, user_id)


def list_members(organization_id: int, user_id: int) -> list[dict]:
    require_member(organization_id, user_id)
    rows = (
        db.session.query(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .filter(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.created_at)
        .all()
    )
    out = []
    for mem, user in rows:
        item = mem.to_dict()
        item.update({"email": user.email, "full_name": user.full_name})
        out.append(item)
    return out


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"])


def invite_token(invitation: Invitation) -> str:
    return _serializer().dumps({"inv_id": invitation.id}, salt=current_app.config.get("SECURITY_PASSWORD_SALT"))


def create_invitation(organization_id: int, user_id: int, email: str, role: str = "member") -> Invitation:
    org = get_visible_organization(organization_id, user_id)
    require_member(organization_id, user_id)
    if not can_manage_members(org, user_id):
        raise Forbidden(_("Only owners and admins can invite members."))
    email = email.lower()
    invitee = User.query.filter_by(email=email).first()
    if invitee is not None and invitee.membership is not None:
        raise Conflict(_("This user already belongs to an organization."))
    inv = Invitation(organization_id=organization_id, email=email, role=role, invited_by=user_id)
    db.session.add(inv)
    commit_or_raise("invitation to organization %s", organization_id)
    return inv


def accept_invitation(token: str, user_id: int) -> OrganizationMember:
    try:
        data = _serializer().loads(
            token,
            salt=current_app.config.get("SECURITY_PASSWORD_SALT"),
            max_age=current_app.config.get("INVITE_TOKEN_EXPIRATION", 7 * 24 * 3600),
        )
    except SignatureExpired:
        raise ValidationFailed(message=_("This invitation link has expired."))
    except BadSignature:
        raise ValidationFailed(message=_("This invitation link is invalid."))
    inv_id = data.get("inv_id") if isinstance(data, dict) else None
    inv = db.session.get(Invitation, inv_id) if inv_id is not None else None
    if inv is None:
        raise NotFound()
    if inv.accepted_at is not None:
        raise Conflict(_("This invitation has already been used."))
    user = db.session.get(User, user_id)
    if user is None or user.email.lower() != inv.email:
        raise Forbidden(_("This invitation was sent to a different email address."))
    if user.membership is not None:
        raise Conflict(_("You already belong to an organization."))
    mem = OrganizationMember(user_id=user_id, organization_id=inv.organization_id, role=inv.role)
    inv.accepted_at = utcnow()
    db.session.add(mem)
    commit_or_raise("invitation %s acceptance", inv.id)
    current_app.logger.info("User %s joined organization %s as %s", user_id, inv.organization_id, inv.role)
    return mem


def remove_member(organization_id: int, user_id: int, member_user_id: int) -> None:
    org = get_visible_organization(organization_id, user_id)
    require_member(organization_id, user_id)
    if not can_manage_members(org, user_id):
        raise Forbidden(_("Only owners and admins can remove members."))
    if member_user_id == org.owner_id:
        raise Forbidden(_("The owner cannot be removed."))
    mem = db.session.get(OrganizationMember, (member_user_id, organization_id))
    if mem is None:
        raise NotFound()
    db.session.delete(mem)
    commit_or_raise("member %s removal from organization %s", member_user_id, organization_id)
