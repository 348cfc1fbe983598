import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from capstone.core.security import create_access_token
from capstone.db.session import get_db
from capstone.main import create_app
from capstone.models.project import Project
from capstone.models.proposed_project import ProposedProject


@pytest.fixture
def client(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False)

    def _get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app = create_app()
    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c


def auth(user_id, *roles, faculty_id="fac-it"):
    token = create_access_token(user_id, roles, faculty_id=faculty_id)
    return {"Authorization": f"Bearer {token}"}


LECTURER = auth("lect-1", "LECTURER")
STUDENT = auth("stu-1", "STUDENT")
HEAD = auth("head-1", "DEPARTMENT_HEAD")


def test_health_echoes_request_id(client):
    r = client.get("/api/v1/health", headers={"X-Request-Id": "req-42"})
    assert r.status_code == 200
    assert r.json()["request_id"] == "req-42"
    assert r.headers["X-Request-Id"] == "req-42"


def test_requires_bearer_token(client):
    r = client.post("/api/v1/proposals", json={"studentIds": ["stu-1"]})
    assert r.status_code in (401, 403)


def test_unknown_role_in_token(client):
    r = client.get(
        "/api/v1/proposals/00000000-0000-0000-0000-000000000000",
        headers=auth("x", "JANITOR"),
    )
    assert r.status_code == 401


def test_topic_flow_over_http(client):
    r = client.post(
        "/api/v1/proposals",
        json={"studentIds": ["stu-1"], "advisorId": "lect-1"},
        headers=LECTURER,
    )
    assert r.status_code == 201, r.text
    proposal = r.json()
    pid = proposal["id"]
    assert proposal["status"] == "TOPIC_SUBMISSION_PENDING"

    r = client.put(
        f"/api/v1/proposals/{pid}/topic",
        json={"title": "Smart campus", "submitToAdvisor": True, "expectedVersion": proposal["version"]},
        headers=STUDENT,
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "TOPIC_PENDING_ADVISOR"

    r = client.post(
        f"/api/v1/proposals/{pid}/topic/review",
        json={"decision": "approve"},
        headers=LECTURER,
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "TOPIC_APPROVED"


def test_domain_errors_are_structured(client):
    r = client.post(
        "/api/v1/proposals",
        json={"studentIds": ["stu-1"], "advisorId": "lect-1"},
        headers=LECTURER,
    )
    pid = r.json()["id"]

    # illegal edge: nothing submitted yet
    r = client.post(
        f"/api/v1/proposals/{pid}/topic/review",
        json={"decision": "approve"},
        headers=LECTURER,
    )
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"

    # wrong role
    r = client.post(
        f"/api/v1/proposals/{pid}/head-review",
        json={"decision": "reject", "comment": "no"},
        headers=STUDENT,
    )
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"

    # stale version
    r = client.put(
        f"/api/v1/proposals/{pid}/topic",
        json={"title": "x", "expectedVersion": 99},
        headers=STUDENT,
    )
    assert r.status_code == 409
    assert r.json()["code"] == "CONFLICT"

    r = client.get("/api/v1/proposals/00000000-0000-0000-0000-000000000000", headers=HEAD)
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


def test_committee_scheduling_over_http(client, engine):
    db = sessionmaker(bind=engine)()
    proposal = ProposedProject(id=uuid.uuid4(), title="Smart campus", status="APPROVED_BY_HEAD", created_by_id="lect-1")
    project = Project(id=uuid.uuid4(), proposed_project_id=proposal.id, title=proposal.title, approved_by_id="head-1")
    db.add_all([proposal, project])
    db.commit()
    pid = str(project.id)
    db.close()

    dean = auth("dean-1", "DEAN")
    r = client.post(
        "/api/v1/committees",
        json={"projectId": pid, "name": "Board 1", "defenseDate": "2026-11-02T09:00:00+00:00", "location": "B2"},
        headers=dean,
    )
    assert r.status_code == 201, r.text
    assert r.json()["status"] == "PREPARING"
    committee_id = r.json()["id"]

    r = client.post(
        f"/api/v1/committees/{pid}/members",
        json={"facultyMemberId": "lect-2", "role": "CHAIRMAN"},
        headers=dean,
    )
    assert r.status_code == 201, r.text
    assert r.json()["committeeId"] == committee_id

    r = client.delete(f"/api/v1/committees/{pid}/members/lect-2", headers=dean)
    assert r.status_code == 204

    r = client.delete(f"/api/v1/committees/{pid}/members/lect-2", headers=dean)
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"
