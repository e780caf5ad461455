from datetime import datetime, timedelta, timezone

import pytest

from models import Resume


@pytest.fixture
def resume_payload() -> dict:
    """A complete resume as the frontend sends it (camelCase keys)."""
    return {
        "id": "resume-1",
        "userId": "anonymous",
        "template": "modern",
        "header": {
            "name": "Jane Doe",
            "title": "Platform Engineer",
            "email": "jane@example.com",
            "phone": "+1 (555) 123-4567",
            "github": "janedoe",
        },
        "summary": (
            "Platform engineer with six years of experience building reliable "
            "deployment tooling and cloud infrastructure for product teams."
        ),
        "skills": {
            "categories": [
                {"id": "languages", "name": "Languages", "items": ["Python", "Go"]},
                {"id": "tools", "name": "Tools", "items": ["Docker", "Terraform"]},
            ]
        },
        "experience": [
            {
                "id": "exp-1",
                "company": "Acme",
                "title": "Senior Engineer",
                "startDate": "2021-01",
                "current": True,
                "bullets": [
                    "Reduced deployment time by 40% by rebuilding the release pipeline",
                    "Migrated 120 services to a shared Kubernetes platform with zero downtime",
                ],
            }
        ],
        "projects": [
            {
                "id": "proj-1",
                "name": "infra-kit",
                "description": "Reusable Terraform modules for service teams",
                "technologies": ["Terraform", "AWS"],
                "bullets": ["Designed a module registry adopted by every product team"],
            }
        ],
        "education": [
            {"id": "edu-1", "institution": "State University", "degree": "BSc", "field": "Computer Science"}
        ],
        "customSections": [],
        "sectionOrder": ["header", "summary", "experience", "projects", "skills", "education", "certifications"],
        "sectionVisibility": {},
        "metadata": {"createdAt": "2024-01-01T00:00:00Z", "updatedAt": "2024-01-01T00:00:00Z"},
    }


@pytest.fixture
def resume(resume_payload) -> Resume:
    return Resume.from_payload(resume_payload)


class FakeClock:
    """Manually advanced clock for usage window tests."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
