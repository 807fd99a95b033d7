from flask import Blueprint, g, jsonify, request

from models import CAMPUS_DRIVE_CATEGORIES
from services.auth_service import admin_required
from services.campus_drive_service import (
    DEFAULT_SORT,
    create_campus_drive,
    delete_campus_drive,
    get_campus_drive,
    list_campus_drives,
    toggle_campus_drive,
    update_campus_drive,
)


campus_drives_bp = Blueprint("campus_drives", __name__, url_prefix="/api/campus-drives")


@campus_drives_bp.route("", methods=["GET"])
def list_drives():
    drives = list_campus_drives(
        category=request.args.get("category", "").strip() or None,
        active=request.args.get("active", "true").strip().lower(),
        sort=request.args.get("sort", DEFAULT_SORT).strip(),
    )
    return jsonify({"success": True, "count": len(drives), "data": [d.to_dict() for d in drives]})


@campus_drives_bp.route("/categories", methods=["GET"])
def categories():
    return jsonify({"success": True, "data": list(CAMPUS_DRIVE_CATEGORIES)})


@campus_drives_bp.route("/<int:drive_id>", methods=["GET"])
def get_drive(drive_id: int):
    return jsonify({"success": True, "data": get_campus_drive(drive_id).to_dict()})


@campus_drives_bp.route("", methods=["POST"])
@admin_required
def create_drive():
    drive = create_campus_drive(request.get_json(silent=True), creator=g.current_user)
    return (
        jsonify({"success": True, "message": "Campus drive created successfully", "data": drive.to_dict()}),
        201,
    )


@campus_drives_bp.route("/<int:drive_id>", methods=["PUT"])
@admin_required
def update_drive(drive_id: int):
    drive = update_campus_drive(drive_id, request.get_json(silent=True))
    return jsonify({"success": True, "message": "Campus drive updated successfully", "data": drive.to_dict()})


@campus_drives_bp.route("/<int:drive_id>", methods=["DELETE"])
@admin_required
def delete_drive(drive_id: int):
    delete_campus_drive(drive_id)
    return jsonify({"success": True, "message": "Campus drive deleted successfully"})


@campus_drives_bp.route("/<int:drive_id>/toggle-status", methods=["PATCH"])
@admin_required
def toggle_drive(drive_id: int):
    drive = toggle_campus_drive(drive_id)
    state = "activated" if drive.is_active else "deactivated"
    return jsonify({"success": True, "message": f"Campus drive {state} successfully", "data": drive.to_dict()})
