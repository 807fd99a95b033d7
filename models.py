from datetime import datetime
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

CAMPUS_DRIVE_CATEGORIES = ("Mass Recruitment", "Dream Company", "Super Dream Company")


def _iso(value):
    return value.isoformat() if value is not None else None


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role = db.Column(db.String(20), nullable=False, default="student")
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_summary(self):
        return {"id": self.id, "name": self.name, "email": self.email}


class Exam(db.Model):
    __tablename__ = "exams"

    id = db.Column(db.Integer, primary_key=True)
    exam_name = db.Column(db.String(200), nullable=False)
    exam_code = db.Column(db.String(50), nullable=False, unique=True, index=True)
    duration = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    created_by = db.relationship("User")
    questions = db.relationship(
        "Question",
        back_populates="exam",
        order_by="Question.position",
        cascade="all, delete-orphan",
    )
    submissions = db.relationship(
        "ExamSubmission",
        back_populates="exam",
        cascade="all, delete-orphan",
    )

    __table_args__ = (db.CheckConstraint("duration >= 1", name="ck_exams_duration"),)

    def to_dict(self, include_answers: bool = True):
        return {
            "id": self.id,
            "examName": self.exam_name,
            "examCode": self.exam_code,
            "examType": "quiz",
            "duration": self.duration,
            "isActive": self.is_active,
            "questions": [q.to_dict(include_answer=include_answers) for q in self.questions],
            "createdBy": self.created_by.to_summary() if self.created_by else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exams.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    question = db.Column(db.Text, nullable=False)
    option_a = db.Column(db.Text, nullable=False)
    option_b = db.Column(db.Text, nullable=False)
    option_c = db.Column(db.Text, nullable=False)
    option_d = db.Column(db.Text, nullable=False)
    correct_option = db.Column(db.String(1), nullable=False)

    exam = db.relationship("Exam", back_populates="questions")

    __table_args__ = (
        db.CheckConstraint("correct_option IN ('A', 'B', 'C', 'D')", name="ck_questions_correct_option"),
    )

    def to_dict(self, include_answer: bool = True):
        data = {
            "id": self.id,
            "question": self.question,
            "optionA": self.option_a,
            "optionB": self.option_b,
            "optionC": self.option_c,
            "optionD": self.option_d,
        }
        # Students never see the answer key.
        if include_answer:
            data["correctOption"] = self.correct_option
        return data


class ExamSubmission(db.Model):
    __tablename__ = "exam_submissions"

    id = db.Column(db.Integer, primary_key=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exams.id"), nullable=False, index=True)
    student_name = db.Column(db.String(100), nullable=False)
    usn = db.Column(db.String(50), nullable=False)
    answers = db.Column(db.JSON, nullable=False, default=list)
    score = db.Column(db.Integer, nullable=False, default=0)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    time_taken = db.Column(db.Integer, nullable=False, default=0)
    started_at = db.Column(db.DateTime, nullable=False)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    auto_submitted = db.Column(db.Boolean, nullable=False, default=False)
    auto_submit_reason = db.Column(db.String(20), nullable=False, default="manual")

    exam = db.relationship("Exam", back_populates="submissions")

    __table_args__ = (db.UniqueConstraint("exam_id", "usn", name="uq_exam_submissions_exam_usn"),)

    @property
    def percentage(self) -> str:
        if not self.total_questions:
            return "0.00"
        return f"{(self.score / self.total_questions) * 100:.2f}"

    def to_scoreboard_row(self):
        return {
            "studentName": self.student_name,
            "usn": self.usn,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "percentage": self.percentage,
            "timeTaken": self.time_taken,
            "autoSubmitted": self.auto_submitted,
            "autoSubmitReason": self.auto_submit_reason,
            "submittedAt": _iso(self.submitted_at),
        }


class CampusDrive(db.Model):
    __tablename__ = "campus_drives"

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(100), nullable=False, index=True)
    job_description = db.Column(db.Text, nullable=False)
    date_of_first_round = db.Column(db.Date, nullable=False)
    category = db.Column(db.String(40), nullable=False)
    package = db.Column(db.String(100), nullable=False)
    study_material_link = db.Column(db.String(500), nullable=True)
    company_website = db.Column(db.String(500), nullable=True)
    additional_notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    priority = db.Column(db.Integer, nullable=False, default=0)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    created_by = db.relationship("User")

    __table_args__ = (
        db.CheckConstraint(
            "category IN ('Mass Recruitment', 'Dream Company', 'Super Dream Company')",
            name="ck_campus_drives_category",
        ),
        db.CheckConstraint("priority >= 0 AND priority <= 10", name="ck_campus_drives_priority"),
        db.Index("ix_campus_drives_listing", "date_of_first_round", "is_active", "priority"),
        db.Index("ix_campus_drives_category_active", "category", "is_active"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "companyName": self.company_name,
            "jobDescription": self.job_description,
            "dateOfFirstRound": _iso(self.date_of_first_round),
            "category": self.category,
            "package": self.package,
            "studyMaterialLink": self.study_material_link,
            "companyWebsite": self.company_website,
            "additionalNotes": self.additional_notes,
            "isActive": self.is_active,
            "priority": self.priority,
            "createdBy": self.created_by.to_summary() if self.created_by else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
