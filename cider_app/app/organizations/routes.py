from __future__ import annotations
from flask import Blueprint, jsonify, current_app, session, url_for
from flask_babel import gettext as _
from flask_login import login_required, current_user
from ..auth.permissions import get_visible_organization, membership_required, owner_required, member_role
from ..forms import (
    OrganizationForm,
    OrganizationUpdateForm,
    DeleteOrganizationForm,
    InviteMemberForm,
    load_form,
)
from ..mail import send_email
from . import service

org_bp = Blueprint("organizations", __name__)


@org_bp.route("/orgs", methods=["POST"])
@login_required
def create_org():
    form = load_form(OrganizationForm)
    org = service.create_organization(current_user.id, form.name.data, form.team_size.data)
    return jsonify({"organization": org.to_dict(), "role": "owner"}), 201


@org_bp.route("/orgs/current", methods=["GET"])
@login_required
def current_org():
    found = service.get_current_organization(current_user.id)
    if found is None:
        return jsonify({"organization": None, "role": None})
    org, role = found
    return jsonify({"organization": org.to_dict(), "role": role})


@org_bp.route("/orgs/<int:org_id>", methods=["GET"])
@login_required
def view_org(org_id: int):
    org = get_visible_organization(org_id, current_user.id)
    return jsonify({"organization": org.to_dict(), "role": member_role(org_id, current_user.id)})


@org_bp.route("/orgs/<int:org_id>", methods=["PATCH"])
@owner_required
def update_org(org_id: int):
    form = load_form(OrganizationUpdateForm)
    org = service.update_organization(org_id, current_user.id, form.name.data)
    return jsonify({"organization": org.to_dict()})


@org_bp.route("/orgs/<int:org_id>", methods=["DELETE"])
@owner_required
def delete_org(org_id: int):
    load_form(DeleteOrganizationForm)
    service.delete_organization(org_id, current_user.id)
    return jsonify({"deleted": True})


@org_bp.route("/orgs/<int:org_id>/members", methods=["GET"])
@membership_required
def list_members(org_id: int):
    return jsonify(service.list_members(org_id, current_user.id))


@org_bp.route("/orgs/<int:org_id>/members/<int:user_id>", methods=["DELETE"])
@membership_required
def remove_member(org_id: int, user_id: int):
    service.remove_member(org_id, current_user.id, user_id)
    return jsonify({"removed": True})


@org_bp.route("/orgs/<int:org_id>/invitations", methods=["POST"])
@membership_required
def invite_member(org_id: int):
    form = load_form(InviteMemberForm)
    inv = service.create_invitation(org_id, current_user.id, form.email.data, form.role.data)
    token = service.invite_token(inv)
    accept_url = url_for("organizations.accept_invite", token=token, _external=True)
    org = inv.organization
    subject = _("Invitation to join %(name)s", name=org.name)
    body = _(
        "You have been invited to join %(name)s on %(app)s.\n\nAccept the invitation here:\n\n%(url)s\n",
        name=org.name,
        app=current_app.config.get("APP_NAME", "Cider Tracker"),
        url=accept_url,
    )
    sent = send_email(subject, inv.email, body)
    if not sent:
        current_app.logger.error("Failed to send invitation %s to %s", inv.id, inv.email)
    data = inv.to_dict()
    data.update({"token": token, "accept_url": accept_url, "email_sent": sent})
    return jsonify(data), 201


@org_bp.route("/invitations/<token>/accept", methods=["POST"])
def accept_invite(token: str):
    if not current_user.is_authenticated:
        # processed by the login route once the user signs in
        session["pending_invite"] = token
        return jsonify({"error": _("Sign in to accept this invitation."), "pending": True}), 401
    mem = service.accept_invitation(token, current_user.id)
    return jsonify({"membership": mem.to_dict()}), 201
