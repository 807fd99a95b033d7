import re
from datetime import date, datetime, timezone
from typing import Optional

from flask import current_app
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from models import CAMPUS_DRIVE_CATEGORIES, CampusDrive, db
from services.errors import NotFoundError, ValidationError


URL_PATTERN = re.compile(r"^https?://.+")

SORT_OPTIONS = {
    "dateOfFirstRound": (CampusDrive.date_of_first_round.asc(), CampusDrive.priority.desc()),
    "priority": (CampusDrive.priority.desc(), CampusDrive.date_of_first_round.asc()),
    "companyName": (CampusDrive.company_name.asc(),),
    "newest": (CampusDrive.created_at.desc(), CampusDrive.id.desc()),
}
DEFAULT_SORT = "dateOfFirstRound"

REQUIRED_MESSAGES = {
    "companyName": "Company name is required",
    "jobDescription": "Job description is required",
    "dateOfFirstRound": "Date of first round is required",
    "category": "Category is required",
    "package": "Package information is required",
}
INVALID_MESSAGES = {
    **REQUIRED_MESSAGES,
    "dateOfFirstRound": "Please provide a valid date",
    "studyMaterialLink": "Study material link must be a valid URL",
    "companyWebsite": "Company website must be a valid URL",
    "additionalNotes": "Additional notes must not exceed 1000 characters",
    "priority": "Priority must be between 0 and 10",
    "isActive": "Active flag must be true or false",
}
# Columns that may be omitted on update but never set to null.
NON_NULLABLE = {
    "company_name": "companyName",
    "job_description": "jobDescription",
    "date_of_first_round": "dateOfFirstRound",
    "category": "category",
    "package": "package",
    "is_active": "isActive",
    "priority": "priority",
}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _utc_date(value: datetime) -> date:
    # Naive datetimes are taken as UTC already.
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def _bounded(value, low: int, high: int, required_message: str, length_message: str):
    if value is None:
        return None
    if not value:
        raise ValueError(required_message)
    if not low <= len(value) <= high:
        raise ValueError(length_message)
    return value


def _optional_url(value, message: str):
    if not value:
        return None
    if not URL_PATTERN.match(value):
        raise ValueError(message)
    return value


class CampusDriveIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True, extra="ignore")

    company_name: str = Field(alias="companyName")
    job_description: str = Field(alias="jobDescription")
    date_of_first_round: date = Field(alias="dateOfFirstRound")
    category: str
    package: str
    study_material_link: Optional[str] = Field(default=None, alias="studyMaterialLink")
    company_website: Optional[str] = Field(default=None, alias="companyWebsite")
    additional_notes: Optional[str] = Field(default=None, alias="additionalNotes")
    is_active: bool = Field(default=True, alias="isActive")
    priority: int = 0

    @field_validator("company_name")
    @classmethod
    def _company_name(cls, value):
        return _bounded(value, 2, 100, REQUIRED_MESSAGES["companyName"],
                        "Company name must be between 2 and 100 characters")

    @field_validator("job_description")
    @classmethod
    def _job_description(cls, value):
        return _bounded(value, 10, 2000, REQUIRED_MESSAGES["jobDescription"],
                        "Job description must be between 10 and 2000 characters")

    @field_validator("package")
    @classmethod
    def _package(cls, value):
        return _bounded(value, 3, 100, REQUIRED_MESSAGES["package"],
                        "Package information must be between 3 and 100 characters")

    @field_validator("category")
    @classmethod
    def _category(cls, value):
        if value is None:
            return None
        if not value:
            raise ValueError(REQUIRED_MESSAGES["category"])
        if value not in CAMPUS_DRIVE_CATEGORIES:
            raise ValueError("Invalid category")
        return value

    @field_validator("date_of_first_round", mode="before")
    @classmethod
    def _parse_date(cls, value):
        if value is None or isinstance(value, date):
            return _utc_date(value) if isinstance(value, datetime) else value
        if not isinstance(value, str) or not value.strip():
            raise ValueError(INVALID_MESSAGES["dateOfFirstRound"])
        try:
            return _utc_date(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            raise ValueError(INVALID_MESSAGES["dateOfFirstRound"]) from None

    @field_validator("date_of_first_round")
    @classmethod
    def _not_in_past(cls, value):
        if value is not None and value < utc_today():
            raise ValueError("Date of first round cannot be in the past")
        return value

    @field_validator("study_material_link")
    @classmethod
    def _study_material_link(cls, value):
        return _optional_url(value, INVALID_MESSAGES["studyMaterialLink"])

    @field_validator("company_website")
    @classmethod
    def _company_website(cls, value):
        return _optional_url(value, INVALID_MESSAGES["companyWebsite"])

    @field_validator("additional_notes")
    @classmethod
    def _additional_notes(cls, value):
        if not value:
            return None
        if len(value) > 1000:
            raise ValueError(INVALID_MESSAGES["additionalNotes"])
        return value

    @field_validator("priority")
    @classmethod
    def _priority(cls, value):
        if value is not None and not 0 <= value <= 10:
            raise ValueError(INVALID_MESSAGES["priority"])
        return value


class CampusDriveUpdate(CampusDriveIn):
    # Same rules, every field optional.
    company_name: Optional[str] = Field(default=None, alias="companyName")
    job_description: Optional[str] = Field(default=None, alias="jobDescription")
    date_of_first_round: Optional[date] = Field(default=None, alias="dateOfFirstRound")
    category: Optional[str] = None
    package: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")
    priority: Optional[int] = None


def _validate(schema, payload):
    if not isinstance(payload, dict):
        raise ValidationError([{"field": "body", "message": "Request body must be a JSON object"}])
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc, REQUIRED_MESSAGES, INVALID_MESSAGES) from None


def list_campus_drives(category: Optional[str] = None, active: str = "true", sort: str = DEFAULT_SORT):
    query = CampusDrive.query
    if active == "true":
        query = query.filter(CampusDrive.is_active.is_(True))
    if category and category != "all":
        query = query.filter(CampusDrive.category == category)
    order = SORT_OPTIONS.get(sort, SORT_OPTIONS[DEFAULT_SORT])
    return query.order_by(*order).all()


def get_campus_drive(drive_id: int) -> CampusDrive:
    drive = db.session.get(CampusDrive, drive_id)
    if drive is None:
        raise NotFoundError("Campus drive not found")
    return drive


def create_campus_drive(payload, creator) -> CampusDrive:
    data = _validate(CampusDriveIn, payload).model_dump()
    drive = CampusDrive(**data, created_by_id=creator.id)
    db.session.add(drive)
    db.session.commit()
    current_app.logger.info("Campus drive %s created by %s", drive.id, creator.email)
    return drive


def update_campus_drive(drive_id: int, payload) -> CampusDrive:
    drive = get_campus_drive(drive_id)
    changes = _validate(CampusDriveUpdate, payload).model_dump(exclude_unset=True)

    errors = [
        {"field": alias, "message": INVALID_MESSAGES[alias]}
        for name, alias in NON_NULLABLE.items()
        if name in changes and changes[name] is None
    ]
    if errors:
        raise ValidationError(errors)

    for name, value in changes.items():
        setattr(drive, name, value)
    db.session.commit()
    current_app.logger.info("Campus drive %s updated (%s)", drive.id, ", ".join(sorted(changes)) or "no fields")
    return drive


def delete_campus_drive(drive_id: int) -> None:
    drive = get_campus_drive(drive_id)
    db.session.delete(drive)
    db.session.commit()
    current_app.logger.info("Campus drive %s deleted", drive_id)


def toggle_campus_drive(drive_id: int) -> CampusDrive:
    drive = get_campus_drive(drive_id)
    drive.is_active = not drive.is_active
    db.session.commit()
    return drive
