import os

# settings are read once (lru_cache); set before anything imports capstone.core.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import capstone.models  # noqa

from capstone.db.base import Base
from capstone.models.enums import UserRole
from capstone.policies.rbac import Principal


@pytest.fixture(scope="function")
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(eng)
        eng.dispose()


@pytest.fixture(scope="function")
def db(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ─────────── principals ───────────

FACULTY = "fac-it"


def make_principal(user_id, *roles, faculty_id=FACULTY):
    return Principal(user_id=user_id, roles=frozenset(roles), faculty_id=faculty_id)


@pytest.fixture
def advisor():
    return make_principal("lect-1", UserRole.LECTURER)


@pytest.fixture
def other_lecturer():
    return make_principal("lect-2", UserRole.LECTURER)


@pytest.fixture
def student():
    return make_principal("stu-1", UserRole.STUDENT)


@pytest.fixture
def other_student():
    return make_principal("stu-9", UserRole.STUDENT)


@pytest.fixture
def head():
    return make_principal("head-1", UserRole.DEPARTMENT_HEAD)


@pytest.fixture
def foreign_head():
    return make_principal("head-2", UserRole.DEPARTMENT_HEAD, faculty_id="fac-law")


@pytest.fixture
def dean():
    return make_principal("dean-1", UserRole.DEAN)
