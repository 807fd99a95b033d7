from flask import Blueprint, g, jsonify, request

from services.auth_service import admin_required
from services.exam_service import (
    add_questions,
    create_exam,
    delete_exam,
    get_active_exam_by_code,
    get_exam,
    has_submitted,
    list_exams,
    replace_questions,
    scoreboard,
    submit_quiz,
    toggle_exam,
)


exams_bp = Blueprint("exams", __name__, url_prefix="/api/exams")


# Student routes
@exams_bp.route("/code/<string:exam_code>", methods=["GET"])
def exam_by_code(exam_code: str):
    exam = get_active_exam_by_code(exam_code)
    return jsonify({"success": True, "data": exam.to_dict(include_answers=False)})


@exams_bp.route("/<int:exam_id>/check-submission/<string:usn>", methods=["GET"])
def check_submission(exam_id: int, usn: str):
    return jsonify({"success": True, "hasSubmitted": has_submitted(exam_id, usn)})


@exams_bp.route("/submit-quiz", methods=["POST"])
def submit():
    submission = submit_quiz(request.get_json(silent=True))
    data = {
        "score": submission.score,
        "totalQuestions": submission.total_questions,
        "percentage": submission.percentage,
        "timeTaken": submission.time_taken,
    }
    return jsonify({"success": True, "data": data, "message": "Quiz submitted successfully"}), 201


# Admin routes
@exams_bp.route("", methods=["POST"])
@admin_required
def create():
    exam = create_exam(request.get_json(silent=True), creator=g.current_user)
    return jsonify({"success": True, "data": exam.to_dict(), "message": "Quiz exam created successfully"}), 201


@exams_bp.route("", methods=["GET"])
@admin_required
def index():
    exams = list_exams()
    return jsonify({"success": True, "count": len(exams), "data": [e.to_dict() for e in exams]})


@exams_bp.route("/<int:exam_id>", methods=["GET"])
@admin_required
def detail(exam_id: int):
    return jsonify({"success": True, "data": get_exam(exam_id).to_dict()})


@exams_bp.route("/<int:exam_id>/questions", methods=["POST"])
@admin_required
def append_questions(exam_id: int):
    payload = request.get_json(silent=True)
    exam = add_questions(exam_id, payload)
    count = len(payload["questions"])
    return jsonify({"success": True, "data": exam.to_dict(), "message": f"{count} question(s) added successfully"})


@exams_bp.route("/<int:exam_id>/questions", methods=["PUT"])
@admin_required
def set_questions(exam_id: int):
    exam = replace_questions(exam_id, request.get_json(silent=True))
    return jsonify({"success": True, "data": exam.to_dict(), "message": "Questions updated successfully"})


@exams_bp.route("/<int:exam_id>/scoreboard", methods=["GET"])
@admin_required
def exam_scoreboard(exam_id: int):
    exam, rows = scoreboard(exam_id)
    return jsonify(
        {
            "success": True,
            "examName": exam.exam_name,
            "examCode": exam.exam_code,
            "examType": "quiz",
            "totalSubmissions": len(rows),
            "data": [row.to_scoreboard_row() for row in rows],
        }
    )


@exams_bp.route("/<int:exam_id>/toggle-status", methods=["PATCH"])
@admin_required
def toggle_status(exam_id: int):
    exam = toggle_exam(exam_id)
    state = "activated" if exam.is_active else "deactivated"
    return jsonify({"success": True, "data": exam.to_dict(), "message": f"Exam {state} successfully"})


@exams_bp.route("/<int:exam_id>", methods=["DELETE"])
@admin_required
def remove(exam_id: int):
    deleted = delete_exam(exam_id)
    return jsonify({"success": True, "message": f"Exam and {deleted} submission(s) deleted successfully"})
