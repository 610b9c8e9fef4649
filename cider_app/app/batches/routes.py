from __future__ import annotations
from flask import Blueprint, jsonify, request
from flask_login import current_user
from ..auth.permissions import membership_required
from ..forms import BatchForm, load_form
from . import service

batches_bp = Blueprint("batches", __name__)


@batches_bp.route("/orgs/<int:org_id>/batches", methods=["GET"])
@membership_required
def list_batches(org_id: int):
    batches = service.list_batches(
        org_id,
        current_user.id,
        query=request.args.get("q", "", type=str),
        stage=request.args.get("stage") or None,
        sort=request.args.get("sort", "newest", type=str),
    )
    return jsonify([b.to_dict() for b in batches])


@batches_bp.route("/orgs/<int:org_id>/batches/stats", methods=["GET"])
@membership_required
def stats(org_id: int):
    return jsonify(service.batch_stats(org_id, current_user.id))


@batches_bp.route("/orgs/<int:org_id>/batches", methods=["POST"])
@membership_required
def create_batch(org_id: int):
    form = load_form(BatchForm)
    batch = service.create_batch(
        org_id,
        current_user.id,
        name=form.name.data,
        variety=form.variety.data,
        volume=form.volume.data,
        start_date=form.start_date.data,
    )
    return jsonify(batch.to_dict()), 201


@batches_bp.route("/orgs/<int:org_id>/batches/<int:batch_id>", methods=["GET"])
@membership_required
def get_batch(org_id: int, batch_id: int):
    return jsonify(service.get_batch(org_id, batch_id, current_user.id).to_dict())


@batches_bp.route("/orgs/<int:org_id>/batches/<int:batch_id>", methods=["PUT"])
@membership_required
def update_batch(org_id: int, batch_id: int):
    form = load_form(BatchForm)
    batch = service.update_batch(
        org_id,
        batch_id,
        current_user.id,
        name=form.name.data,
        variety=form.variety.data,
        volume=form.volume.data,
        start_date=form.start_date.data,
    )
    return jsonify(batch.to_dict())


@batches_bp.route("/orgs/<int:org_id>/batches/<int:batch_id>", methods=["DELETE"])
@membership_required
def delete_batch(org_id: int, batch_id: int):
    service.delete_batch(org_id, batch_id, current_user.id)
    return jsonify({"deleted": True})


@batches_bp.route("/orgs/<int:org_id>/batches/<int:batch_id>/advance", methods=["POST"])
@membership_required
def advance(org_id: int, batch_id: int):
    # the body is ignored: the next stage is never chosen by the client
    result = service.advance(batch_id, org_id, current_user.id)
    return jsonify(
        {
            "batch": result.batch.to_dict(),
            "advanced": result.advanced,
            "previous_stage": result.previous_stage,
            "message": result.message,
        }
    )
