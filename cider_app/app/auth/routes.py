from __future__ import annotations
from flask import Blueprint, jsonify, request, redirect, session, current_app, url_for
from flask_babel import gettext as _
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from .. import db
from ..errors import Conflict, ValidationFailed, store_failure
from ..forms import RegisterForm, LoginForm, ProfileForm, ChangePasswordForm, load_form
from ..models import User

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/auth/set-language", methods=["POST"])
def set_language():
    lang = (request.get_json(silent=True) or {}).get("lang")
    if lang in current_app.config.get("LANGUAGES", ["en"]):
        session["lang"] = lang
    return jsonify({"lang": session.get("lang")})


@auth_bp.route("/auth/register", methods=["POST"])
def register():
    form = load_form(RegisterForm)
    email = form.email.data.lower()
    if User.query.filter_by(email=email).first():
        raise Conflict(_("An account with this email already exists."))
    user = User(email=email, full_name=form.full_name.data or None)
    user.set_password(form.password.data)
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.exception("User commit failed, possible race on unique email")
        raise Conflict(_("An account with this email already exists."))
    login_user(user)
    current_app.logger.info("Registered user %s", user.id)
    return jsonify(user.to_dict()), 201


@auth_bp.route("/auth/login", methods=["POST"])
def login():
    form = load_form(LoginForm)
    user = User.query.filter_by(email=form.email.data.lower()).first()
    if user and user.check_password(form.password.data):
        login_user(user)
        # an invitation link opened while signed out is processed now
        pending = session.pop("pending_invite", None)
        if pending:
            return redirect(url_for("organizations.accept_invite", token=pending), code=307)
        return jsonify(user.to_dict())
    return jsonify({"error": _("Invalid email or password.")}), 401


@auth_bp.route("/auth/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"signed_out": True})


@auth_bp.route("/auth/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user.to_dict())


@auth_bp.route("/auth/profile", methods=["PATCH"])
@login_required
def update_profile():
    form = load_form(ProfileForm)
    current_user.full_name = form.full_name.data
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Profile update failed for user %s", current_user.id)
        raise store_failure(exc)
    return jsonify(current_user.to_dict())


@auth_bp.route("/auth/password", methods=["POST"])
@login_required
def change_password():
    form = load_form(ChangePasswordForm)
    if not current_user.check_password(form.current.data):
        raise ValidationFailed({"current": [_("Current password is incorrect")]})
    current_user.set_password(form.new.data)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Password change failed for user %s", current_user.id)
        raise store_failure(exc)
    current_app.logger.info("Password changed for user %s", current_user.id)
    return jsonify({"password_changed": True})
