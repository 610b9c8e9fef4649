from __future__ import annotations
from flask import Blueprint, jsonify, request
from flask_login import current_user
from ..auth.permissions import membership_required
from ..forms import FermentationLogForm, TastingNoteForm, PackagingScheduleForm, load_form
from . import service

records_bp = Blueprint("records", __name__)

BATCH_URL = "/orgs/<int:org_id>/batches/<int:batch_id>"


def _fields(form) -> dict:
    # blank text is stored as NULL
    return {name: (None if value == "" else value) for name, value in form.data.items()}


def _date_range() -> dict:
    return {
        "since": service.parse_date_arg(request.args.get("since"), "since"),
        "until": service.parse_date_arg(request.args.get("until"), "until"),
    }


@records_bp.route(BATCH_URL + "/fermentation-logs", methods=["GET"])
@membership_required
def list_logs(org_id: int, batch_id: int):
    logs = service.list_fermentation_logs(org_id, batch_id, current_user.id, **_date_range())
    return jsonify([log.to_dict() for log in logs])


@records_bp.route(BATCH_URL + "/fermentation-logs", methods=["POST"])
@membership_required
def add_log(org_id: int, batch_id: int):
    form = load_form(FermentationLogForm)
    log = service.add_fermentation_log(org_id, batch_id, current_user.id, **_fields(form))
    return jsonify(log.to_dict()), 201


@records_bp.route(BATCH_URL + "/fermentation-logs/<int:log_id>", methods=["PUT"])
@membership_required
def update_log(org_id: int, batch_id: int, log_id: int):
    form = load_form(FermentationLogForm)
    log = service.update_fermentation_log(org_id, batch_id, log_id, current_user.id, **_fields(form))
    return jsonify(log.to_dict())


@records_bp.route(BATCH_URL + "/fermentation-logs/<int:log_id>", methods=["DELETE"])
@membership_required
def delete_log(org_id: int, batch_id: int, log_id: int):
    service.delete_fermentation_log(org_id, batch_id, log_id, current_user.id)
    return jsonify({"deleted": True})


@records_bp.route(BATCH_URL + "/tasting-notes", methods=["GET"])
@membership_required
def list_notes(org_id: int, batch_id: int):
    notes = service.list_tasting_notes(org_id, batch_id, current_user.id, **_date_range())
    return jsonify([n.to_dict() for n in notes])


@records_bp.route(BATCH_URL + "/tasting-notes", methods=["POST"])
@membership_required
def add_note(org_id: int, batch_id: int):
    form = load_form(TastingNoteForm)
    note = service.add_tasting_note(org_id, batch_id, current_user.id, **_fields(form))
    return jsonify(note.to_dict()), 201


@records_bp.route(BATCH_URL + "/tasting-notes/<int:note_id>", methods=["PUT"])
@membership_required
def update_note(org_id: int, batch_id: int, note_id: int):
    form = load_form(TastingNoteForm)
    note = service.update_tasting_note(org_id, batch_id, note_id, current_user.id, **_fields(form))
    return jsonify(note.to_dict())


@records_bp.route(BATCH_URL + "/tasting-notes/<int:note_id>", methods=["DELETE"])
@membership_required
def delete_note(org_id: int, batch_id: int, note_id: int):
    service.delete_tasting_note(org_id, batch_id, note_id, current_user.id)
    return jsonify({"deleted": True})


@records_bp.route(BATCH_URL + "/packaging-schedules", methods=["GET"])
@membership_required
def list_schedules(org_id: int, batch_id: int):
    schedules = service.list_packaging_schedules(org_id, batch_id, current_user.id)
    return jsonify([s.to_dict() for s in schedules])


@records_bp.route(BATCH_URL + "/packaging-schedules", methods=["POST"])
@membership_required
def add_schedule(org_id: int, batch_id: int):
    form = load_form(PackagingScheduleForm)
    schedule = service.add_packaging_schedule(org_id, batch_id, current_user.id, **_fields(form))
    return jsonify(schedule.to_dict()), 201


@records_bp.route(BATCH_URL + "/packaging-schedules/<int:schedule_id>", methods=["PUT"])
@membership_required
def update_schedule(org_id: int, batch_id: int, schedule_id: int):
    form = load_form(PackagingScheduleForm)
    schedule = service.update_packaging_schedule(org_id, batch_id, schedule_id, current_user.id, **_fields(form))
    return jsonify(schedule.to_dict())


@records_bp.route(BATCH_URL + "/packaging-schedules/<int:schedule_id>", methods=["DELETE"])
@membership_required
def delete_schedule(org_id: int, batch_id: int, schedule_id: int):
    service.delete_packaging_schedule(org_id, batch_id, schedule_id, current_user.id)
    return jsonify({"deleted": True})


@records_bp.route(BATCH_URL + "/packaging-schedules/<int:schedule_id>/complete", methods=["POST"])
@membership_required
def complete_schedule(org_id: int, batch_id: int, schedule_id: int):
    schedule = service.complete_packaging(org_id, batch_id, schedule_id, current_user.id)
    return jsonify(schedule.to_dict())


@records_bp.route("/orgs/<int:org_id>/packaging/upcoming", methods=["GET"])
@membership_required
def upcoming(org_id: int):
    out = []
    for schedule, batch in service.upcoming_packaging(org_id, current_user.id):
        item = schedule.to_dict()
        item.update({"batch_name": batch.name, "batch_stage": batch.current_stage})
        out.append(item)
    return jsonify(out)
