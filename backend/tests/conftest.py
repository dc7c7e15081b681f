import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from caseflow.database import Base, get_db, get_session_factory
from caseflow.main import app
from caseflow.models.user import User
from caseflow.models.case_study import CaseStudy

TEST_DB_URL = "sqlite:///./test_caseflow.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


def override_get_session_factory():
    return TestingSession


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_session_factory] = override_get_session_factory


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    users = {
        "admin": User(emp_id="admin001", name="Admin", role="admin"),
        "editor": User(emp_id="editor001", name="Editor", role="editor"),
        "viewer": User(emp_id="viewer001", name="Viewer", role="viewer"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


def make_case(db, **overrides) -> CaseStudy:
    values = {
        "title": "Why did checkout conversion drop?",
        "the_question": "Conversion fell 12% week over week. Walk through the diagnosis.",
        "read_time_minutes": 3,
        "difficulty": "intermediate",
        "question_type": "Root Cause Analysis (RCA)",
        "seniority_level": 1,
        "tags": ["metrics"],
        "frameworks_applicable": [],
        "industry": "E-commerce",
        "image_generation_status": "completed",
        "is_published": True,
    }
    values.update(overrides)
    case = CaseStudy(**values)
    db.add(case)
    db.commit()
    db.refresh(case)
    return case


@pytest.fixture
def seed_case(db):
    return make_case(db)


def get_token(client, emp_id: str) -> str:
    resp = client.post("/api/auth/login", json={"emp_id": emp_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, emp_id: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, emp_id)}"}
