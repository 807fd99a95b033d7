from datetime import timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db
from services.auth_service import create_user
from services.campus_drive_service import utc_today


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    user, token = create_user("Placement Admin", "admin@example.com", role="admin")
    return user, {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin):
    return admin[1]


@pytest.fixture
def student_headers(app):
    _, token = create_user("Asha Rao", "asha@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def drive_payload():
    def build(**overrides):
        payload = {
            "companyName": "Acme Systems",
            "jobDescription": "Graduate software engineer working on billing services.",
            "dateOfFirstRound": (utc_today() + timedelta(days=10)).isoformat(),
            "category": "Dream Company",
            "package": "12 LPA",
            "studyMaterialLink": "https://example.com/acme-prep",
            "companyWebsite": "https://acme.example.com",
            "additionalNotes": "Bring two copies of your resume.",
            "priority": 5,
        }
        payload.update(overrides)
        return payload

    return build
