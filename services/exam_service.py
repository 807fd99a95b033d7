from datetime import datetime, timezone
from typing import List, Literal, Optional

from flask import current_app
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from models import Exam, ExamSubmission, Question, db
from services.errors import BadRequestError, NotFoundError, ValidationError


NOT_ANSWERED = "Not Answered"

REQUIRED_MESSAGES = {
    "examName": "Exam name is required",
    "examCode": "Exam code is required",
    "duration": "Duration is required",
    "question": "Question text is required",
    "optionA": "Option A is required",
    "optionB": "Option B is required",
    "optionC": "Option C is required",
    "optionD": "Option D is required",
    "correctOption": "Correct option is required",
    "examId": "Exam id is required",
    "studentName": "Student name is required",
    "usn": "USN is required",
    "answers": "Answers are required",
    "startedAt": "Start time is required",
}
INVALID_MESSAGES = {
    "duration": "Duration must be a whole number of minutes (at least 1)",
    "correctOption": "Correct option must be one of A, B, C, D",
    "selectedOption": "Selected option must be one of A, B, C, D or null",
    "startedAt": "Please provide a valid ISO-8601 timestamp",
    "submittedAt": "Please provide a valid ISO-8601 timestamp",
    "autoSubmitReason": "Auto submit reason must be timeout, tab_change or manual",
}


class _Payload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True, extra="ignore")


class ExamIn(_Payload):
    exam_name: str = Field(alias="examName", min_length=1, max_length=200)
    exam_code: str = Field(alias="examCode", min_length=1, max_length=50)
    duration: int = Field(ge=1)

    @field_validator("exam_code")
    @classmethod
    def _upper(cls, value):
        return value.upper()


class QuestionIn(_Payload):
    question: str = Field(min_length=1)
    option_a: str = Field(alias="optionA", min_length=1)
    option_b: str = Field(alias="optionB", min_length=1)
    option_c: str = Field(alias="optionC", min_length=1)
    option_d: str = Field(alias="optionD", min_length=1)
    correct_option: Literal["A", "B", "C", "D"] = Field(alias="correctOption")


class QuestionsIn(_Payload):
    questions: List[QuestionIn]


class AnswerIn(_Payload):
    selected_option: Optional[Literal["A", "B", "C", "D"]] = Field(default=None, alias="selectedOption")


class QuizSubmissionIn(_Payload):
    exam_id: int = Field(alias="examId")
    student_name: str = Field(alias="studentName", min_length=1, max_length=100)
    usn: str = Field(min_length=1, max_length=50)
    answers: List[AnswerIn]
    started_at: datetime = Field(alias="startedAt")
    submitted_at: Optional[datetime] = Field(default=None, alias="submittedAt")
    auto_submitted: bool = Field(default=False, alias="autoSubmitted")
    auto_submit_reason: Literal["timeout", "tab_change", "manual"] = Field(default="manual", alias="autoSubmitReason")

    @field_validator("usn")
    @classmethod
    def _upper(cls, value):
        return value.upper()


def _validate(schema, payload):
    if not isinstance(payload, dict):
        raise ValidationError([{"field": "body", "message": "Request body must be a JSON object"}])
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc, REQUIRED_MESSAGES, INVALID_MESSAGES) from None


def _naive_utc(value: datetime) -> datetime:
    # Stored timestamps are naive UTC.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _build_questions(items, start: int = 0):
    return [
        Question(
            position=start + offset,
            question=item.question,
            option_a=item.option_a,
            option_b=item.option_b,
            option_c=item.option_c,
            option_d=item.option_d,
            correct_option=item.correct_option,
        )
        for offset, item in enumerate(items)
    ]


def create_exam(payload, creator) -> Exam:
    data = _validate(ExamIn, payload)
    if Exam.query.filter_by(exam_code=data.exam_code).first():
        raise BadRequestError("Exam code already exists")

    exam = Exam(
        exam_name=data.exam_name,
        exam_code=data.exam_code,
        duration=data.duration,
        created_by_id=creator.id,
    )
    db.session.add(exam)
    db.session.commit()
    current_app.logger.info("Exam %s (%s) created by %s", exam.id, exam.exam_code, creator.email)
    return exam


def list_exams():
    return Exam.query.order_by(Exam.created_at.desc(), Exam.id.desc()).all()


def get_exam(exam_id: int) -> Exam:
    exam = db.session.get(Exam, exam_id)
    if exam is None:
        raise NotFoundError("Exam not found")
    return exam


def get_active_exam_by_code(exam_code: str) -> Exam:
    exam = Exam.query.filter_by(exam_code=exam_code.strip().upper(), is_active=True).first()
    if exam is None:
        raise NotFoundError("Exam not found or inactive")
    return exam


def add_questions(exam_id: int, payload) -> Exam:
    exam = get_exam(exam_id)
    items = _validate(QuestionsIn, payload).questions
    exam.questions.extend(_build_questions(items, start=len(exam.questions)))
    db.session.commit()
    current_app.logger.info("Added %d question(s) to exam %s", len(items), exam.id)
    return exam


def replace_questions(exam_id: int, payload) -> Exam:
    exam = get_exam(exam_id)
    items = _validate(QuestionsIn, payload).questions
    exam.questions = _build_questions(items)
    db.session.commit()
    current_app.logger.info("Replaced questions of exam %s (%d now)", exam.id, len(items))
    return exam


def has_submitted(exam_id: int, usn: str) -> bool:
    query = ExamSubmission.query.filter_by(exam_id=exam_id, usn=usn.strip().upper())
    return db.session.query(query.exists()).scalar()


def score_answers(questions, answers):
    """Grade answers against the key in exam order.

    Missing trailing answers count as unanswered; answers beyond the last
    question are ignored. A question is correct only when an option was
    chosen and it equals the key.
    """
    score = 0
    graded = []
    for index, question in enumerate(questions):
        selected = answers[index] if index < len(answers) else None
        is_correct = bool(selected and selected == question.correct_option)
        if is_correct:
            score += 1
        graded.append(
            {
                "questionIndex": index,
                "selectedOption": selected or NOT_ANSWERED,
                "isCorrect": is_correct,
            }
        )
    return score, graded


def submit_quiz(payload):
    data = _validate(QuizSubmissionIn, payload)
    exam = get_exam(data.exam_id)

    if has_submitted(exam.id, data.usn):
        raise BadRequestError("You have already submitted this exam")

    started_at = _naive_utc(data.started_at)
    submitted_at = _naive_utc(data.submitted_at) if data.submitted_at else datetime.utcnow()
    if submitted_at < started_at:
        raise ValidationError([{"field": "submittedAt", "message": "Submission time cannot be before start time"}])

    score, graded = score_answers(exam.questions, [item.selected_option for item in data.answers])
    time_taken = round((submitted_at - started_at).total_seconds() / 60)

    submission = ExamSubmission(
        exam_id=exam.id,
        student_name=data.student_name,
        usn=data.usn,
        answers=graded,
        score=score,
        total_questions=len(exam.questions),
        time_taken=time_taken,
        started_at=started_at,
        submitted_at=submitted_at,
        auto_submitted=data.auto_submitted,
        auto_submit_reason=data.auto_submit_reason,
    )
    db.session.add(submission)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent submission for the same USN.
        db.session.rollback()
        raise BadRequestError("You have already submitted this exam") from None

    current_app.logger.info(
        "Quiz submitted: exam=%s usn=%s score=%d/%d auto=%s",
        exam.id, submission.usn, score, submission.total_questions, submission.auto_submit_reason,
    )
    return submission


def scoreboard(exam_id: int):
    exam = get_exam(exam_id)
    rows = (
        ExamSubmission.query.filter_by(exam_id=exam.id)
        .order_by(ExamSubmission.submitted_at.desc(), ExamSubmission.id.desc())
        .all()
    )
    return exam, rows


def toggle_exam(exam_id: int) -> Exam:
    exam = get_exam(exam_id)
    exam.is_active = not exam.is_active
    db.session.commit()
    return exam


def delete_exam(exam_id: int) -> int:
    exam = get_exam(exam_id)
    deleted = len(exam.submissions)
    db.session.delete(exam)
    db.session.commit()
    current_app.logger.info("Exam %s deleted with %d submission(s)", exam_id, deleted)
    return deleted
