"""Authorization predicates.

Every read and write of tenant data is gated by :func:`is_organization_member`.
The other helpers here are built on top of it (or on the organization's
``owner_id``) and never query memberships on their own.
"""
from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app
from flask_login import current_user

from .. import db
from ..errors import Forbidden, NotFound
from ..models import Organization, OrganizationMember


def is_organization_member(organization_id: Optional[int], user_id: Optional[int]) -> bool:
    """True iff a membership row exists for the pair, whatever its role."""
    if organization_id is None or user_id is None:
        return False
    return db.session.query(
        OrganizationMember.query.filter_by(organization_id=organization_id, user_id=user_id).exists()
    ).scalar()


def member_role(organization_id: int, user_id: int) -> Optional[str]:
    if not is_organization_member(organization_id, user_id):
        return None
    mem = db.session.get(OrganizationMember, (user_id, organization_id))
    return mem.role if mem else None


def can_view_organization(org: Organization, user_id: int) -> bool:
    # the declared owner can still see an organization whose owner membership is missing
    return is_organization_member(org.id, user_id) or org.owner_id == user_id


def can_manage_organization(org: Organization, user_id: int) -> bool:
    return org.owner_id == user_id


def can_manage_members(org: Organization, user_id: int) -> bool:
    if org.owner_id == user_id:
        return True
    return member_role(org.id, user_id) in ("owner", "admin")


def get_visible_organization(organization_id: int, user_id: int) -> Organization:
    org = db.session.get(Organization, organization_id)
    if org is None or not can_view_organization(org, user_id):
        raise NotFound()
    return org


def require_member(organization_id: int, user_id: int) -> None:
    if not is_organization_member(organization_id, user_id):
        raise NotFound()


def membership_required(f):
    """Reject the request unless the current user belongs to ``org_id``.

    The view must take an ``org_id`` URL argument. Non-members get the same
    404 as a missing organization.
    """

    @wraps(f)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        require_member(kwargs["org_id"], current_user.id)
        return f(*args, **kwargs)

    return wrapped


def owner_required(f):
    @wraps(f)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        org = get_visible_organization(kwargs["org_id"], current_user.id)
        if not can_manage_organization(org, current_user.id):
            raise Forbidden()
        return f(*args, **kwargs)

    return wrapped
