"""
Shared fixtures: in-memory SQLite database, users and an API client.
"""
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from patient_actors.api import deps
from patient_actors.api.main import create_app
from patient_actors.database.config import DatabaseConfig
from patient_actors.database.repositories import UserRepository
from patient_actors.llm.mock import MockLLMProvider
from patient_actors.services.patient_actor_registry import PatientActorRegistry


@pytest.fixture()
def db_config() -> Iterator[DatabaseConfig]:
    config = DatabaseConfig("sqlite://", echo=False)
    config.create_tables()
    try:
        yield config
    finally:
        config.dispose()


@pytest.fixture()
def db(db_config: DatabaseConfig) -> Iterator[Session]:
    session = db_config.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def users(db: Session):
    repo = UserRepository(db)
    return {
        "student": repo.create(name="Sam Student", email="sam@example.edu"),
        "other_student": repo.create(name="Olive Other", email="olive@example.edu"),
        "instructor": repo.create(name="Dr. Ines Lee", email="lee@example.edu", role="instructor"),
        "second_instructor": repo.create(name="Dr. Abel Kim", email="kim@example.edu", role="instructor"),
        "admin": repo.create(name="Ada Admin", email="ada@example.edu", role="admin"),
    }


@pytest.fixture()
def registry(db: Session) -> PatientActorRegistry:
    return PatientActorRegistry(db)


@pytest.fixture()
def actor(registry, users):
    """Private persona owned by the student"""
    return registry.create(
        users["student"],
        name="Maria Gomez",
        age=47,
        profile={"chief_complaint": "Chest pain for two days", "personality": "Anxious"},
    )


@pytest.fixture()
def public_actor(registry, users):
    """Public persona owned by the instructor"""
    return registry.create(
        users["instructor"],
        name="John Doe",
        age=62,
        is_public=True,
        profile={"chief_complaint": "Shortness of breath"},
    )


@pytest.fixture()
def llm() -> MockLLMProvider:
    return MockLLMProvider({"responses": ["My chest hurts when I climb stairs."]})


@pytest.fixture()
def client(db_config: DatabaseConfig, llm: MockLLMProvider) -> Iterator[TestClient]:
    """
    API client bound to the test database and the mock provider.

    Used without the context manager so the lifespan (which opens the
    configured DATABASE_URL) does not run.
    """
    app = create_app()

    def _get_db():
        session = db_config.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_llm_provider] = lambda: llm
    yield TestClient(app)
    app.dependency_overrides.clear()
