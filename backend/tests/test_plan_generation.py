"""
Tests for AI plan generation.

Verifies:
- PlanGenerationClient sends the project payload and parses phases
- Every client failure mode surfaces as GenerationFailure
- generate_from_plan bulk-creates phases on success
- Any generation failure leaves no phases behind (no partial plan)
- Duration-only phases are scheduled back to back with a one-day buffer
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import json
import re

import httpx
import pytest
from datetime import date
from uuid import uuid4
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from buildplan.config import Settings
from buildplan.database import Base
from buildplan.models.project_phase import ProjectPhase
from buildplan.services.errors import GenerationFailure
from buildplan.services.phase_plan_service import PhasePlanService, ValidationError
from buildplan.services.plan_generation_client import PlanGenerationClient, PlanRequest

# Setup test database
TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(TEST_DATABASE_URL)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PLAN_URL = "http://plans.test/functions/v1/generate-project-plan"


@pytest.fixture
def db():
    """Create test database session."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settings():
    return Settings(
        plan_generation_url=PLAN_URL,
        plan_generation_api_key="test-key",
        plan_generation_timeout_seconds=5,
    )


class StubGenerator:
    """Plan generator returning canned phases (or raising)."""

    def __init__(self, phases=None, error=None):
        self.phases = phases
        self.error = error
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.phases


def make_client(settings, handler):
    return PlanGenerationClient(settings=settings, transport=httpx.MockTransport(handler))


# PlanGenerationClient


def test_client_posts_payload_and_returns_phases(settings):
    """Test: request body/headers match the function contract."""
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"phases": [
            {"phase_name": "Planning & Design", "duration_days": 14},
        ]})

    with make_client(settings, handler) as client:
        phases = client.generate(PlanRequest(
            project_id="p-1",
            project_name="Loft Conversion",
            project_type="Construction",
        ))

    assert phases == [{"phase_name": "Planning & Design", "duration_days": 14}]
    assert seen["url"] == PLAN_URL
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"] == {
        "projectId": "p-1",
        "projectName": "Loft Conversion",
        "projectDescription": None,
        "projectType": "Construction",
    }


def test_client_timeout_is_generation_failure(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(settings, handler)

    with pytest.raises(GenerationFailure, match="timed out"):
        client.generate(PlanRequest(project_id="p", project_name="X"))


def test_client_transport_error_is_generation_failure(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GenerationFailure):
        make_client(settings, handler).generate(PlanRequest(project_id="p", project_name="X"))


def test_client_error_status_is_generation_failure(settings):
    """Test: a 500 from the function is reported with its error message."""
    def handler(request):
        return httpx.Response(500, json={"error": "model unavailable"})

    with pytest.raises(GenerationFailure) as exc_info:
        make_client(settings, handler).generate(PlanRequest(project_id="p", project_name="X"))

    assert exc_info.value.details["status_code"] == 500
    assert exc_info.value.details["error"] == "model unavailable"


@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>not json</html>"),
    httpx.Response(200, json={"phases": []}),
    httpx.Response(200, json={"plan": []}),
    httpx.Response(200, json=[{"phase_name": "A"}]),
    httpx.Response(200, json={"phases": ["Planning"]}),
])
def test_client_malformed_response_is_generation_failure(settings, response):
    with pytest.raises(GenerationFailure):
        make_client(settings, lambda request: response).generate(
            PlanRequest(project_id="p", project_name="X")
        )


# PhasePlanService.generate_from_plan


def test_generate_schedules_duration_phases(db):
    """Test: phases run back to back with one free day between them."""
    generator = StubGenerator(phases=[
        {"phase_name": "Planning & Design", "duration_days": 14, "description": "Design review"},
        {"phase_name": "Permits & Approvals", "duration_days": 21, "dependencies": [0]},
        {"phase_name": "Site Preparation", "duration_days": 1},
    ])
    service = PhasePlanService(db, plan_generator=generator)
    project_id = uuid4()

    created = service.generate_from_plan(
        project_id,
        "Kitchen Extension",
        project_description="Single storey rear extension",
        project_type="Construction",
        start_date=date(2024, 1, 1),
    )

    assert [(p.start_date, p.end_date) for p in created] == [
        (date(2024, 1, 1), date(2024, 1, 14)),
        (date(2024, 1, 16), date(2024, 2, 5)),
        (date(2024, 2, 7), date(2024, 2, 7)),
    ]
    assert created[0].description == "Design review"
    assert all(p.status == "not_started" for p in created)

    stored = service.list_by_project(project_id)
    assert [p.phase_name for p in stored] == [
        "Planning & Design",
        "Permits & Approvals",
        "Site Preparation",
    ]

    request = generator.requests[0]
    assert request.project_id == str(project_id)
    assert request.project_name == "Kitchen Extension"
    assert request.project_description == "Single storey rear extension"
    assert request.project_type == "Construction"


def test_generated_phases_get_distinct_hex_colors(db):
    generator = StubGenerator(phases=[
        {"phase_name": f"Phase {i}", "duration_days": 3} for i in range(6)
    ] + [{"phase_name": "Own color", "duration_days": 3, "color": "#123456"}])
    service = PhasePlanService(db, plan_generator=generator)

    created = service.generate_from_plan(uuid4(), "House", start_date=date(2024, 1, 1))

    generated_colors = [p.color for p in created[:6]]
    assert len(set(generated_colors)) == 6
    assert all(re.match(r"^#[0-9a-f]{6}$", c) for c in generated_colors)
    assert created[6].color == "#123456"


def test_generate_keeps_explicit_dates(db):
    """Test: phases with their own dates are persisted as given."""
    generator = StubGenerator(phases=[
        {"phase_name": "Survey", "start_date": "2024-05-01", "end_date": "2024-05-03", "status": "completed"},
        {"phase_name": "Design", "duration_days": 5},
    ])
    service = PhasePlanService(db, plan_generator=generator)

    created = service.generate_from_plan(uuid4(), "Barn", start_date=date(2024, 1, 1))

    assert (created[0].start_date, created[0].end_date) == (date(2024, 5, 1), date(2024, 5, 3))
    assert created[0].status == "completed"
    # continues after the explicit phase
    assert created[1].start_date == date(2024, 5, 5)


def test_generate_keeps_explicit_dates_at_end_of_calendar(db):
    """Test: a final explicit phase ending on the last supported day is accepted."""
    generator = StubGenerator(phases=[
        {"phase_name": "Design", "duration_days": 5},
        {"phase_name": "Last day", "start_date": "9999-12-01", "end_date": "9999-12-31", "status": None},
    ])
    service = PhasePlanService(db, plan_generator=generator)
    project_id = uuid4()

    created = service.generate_from_plan(project_id, "Vault", start_date=date(2024, 1, 1))

    assert [(p.start_date, p.end_date) for p in created] == [
        (date(2024, 1, 1), date(2024, 1, 5)),
        (date(9999, 12, 1), date(9999, 12, 31)),
    ]
    assert created[1].status == "not_started"
    assert len(service.list_by_project(project_id)) == 2


def test_generate_appends_after_existing_phases(db):
    project_id = uuid4()
    generator = StubGenerator(phases=[{"phase_name": "Generated", "duration_days": 2}])
    service = PhasePlanService(db, plan_generator=generator)
    service.create(project_id, {
        "phase_name": "Manual",
        "start_date": "2024-01-01",
        "end_date": "2024-01-02",
    })

    service.generate_from_plan(project_id, "Garage", start_date=date(2024, 2, 1))

    assert [p.phase_name for p in service.list_by_project(project_id)] == ["Manual", "Generated"]


@pytest.mark.parametrize("generator", [
    StubGenerator(error=GenerationFailure("Plan generation timed out")),
    StubGenerator(error=RuntimeError("connection reset")),
    StubGenerator(phases=[]),
    StubGenerator(phases=None),
    StubGenerator(phases=[
        {"phase_name": "Good", "duration_days": 3},
        {"phase_name": "Bad", "start_date": "2024-02-10", "end_date": "2024-02-01"},
    ]),
    StubGenerator(phases=[
        {"phase_name": "Good", "duration_days": 3},
        {"phase_name": "No length"},
    ]),
    StubGenerator(phases=[
        {"phase_name": "Good", "duration_days": 3},
        {"phase_name": "", "duration_days": 3},
    ]),
    StubGenerator(phases=[{"phase_name": "Negative", "duration_days": -2}]),
    StubGenerator(phases=[{"phase_name": "Endless", "duration_days": 10**10}]),
    StubGenerator(phases=[
        {"phase_name": "Last day", "start_date": "9999-12-01", "end_date": "9999-12-31"},
        {"phase_name": "After the end", "duration_days": 3},
    ]),
    StubGenerator(phases=["Planning"]),
])
def test_generation_failure_creates_nothing(db, generator):
    """Test: every failure raises GenerationFailure and leaves no rows."""
    service = PhasePlanService(db, plan_generator=generator)
    project_id = uuid4()

    with pytest.raises(GenerationFailure):
        service.generate_from_plan(project_id, "Shed", start_date=date(2024, 1, 1))

    assert service.list_by_project(project_id) == []
    assert db.query(ProjectPhase).count() == 0


def test_generate_without_generator_fails(db):
    with pytest.raises(GenerationFailure):
        PhasePlanService(db).generate_from_plan(uuid4(), "Shed")


def test_generate_requires_project_name(db):
    generator = StubGenerator(phases=[{"phase_name": "A", "duration_days": 1}])

    with pytest.raises(ValidationError):
        PhasePlanService(db, plan_generator=generator).generate_from_plan(uuid4(), "  ")

    assert generator.requests == []


def test_generate_through_http_client(db, settings):
    """Test: service and HTTP client together, end to end."""
    def handler(request):
        return httpx.Response(200, json={"phases": [
            {"phase_name": "Foundation Work", "duration_days": 14, "description": "Pour"},
            {"phase_name": "Completion & Handover", "duration_days": 7},
        ]})

    with make_client(settings, handler) as client:
        service = PhasePlanService(db, plan_generator=client)
        created = service.generate_from_plan(uuid4(), "Annex", start_date=date(2024, 3, 1))

    assert [p.end_date for p in created] == [date(2024, 3, 14), date(2024, 3, 22)]
