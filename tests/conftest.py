# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from pulse_scoring.core.security import create_access_token
from pulse_scoring.db.session import Base
from pulse_scoring.db.session import get_db as app_get_session
from pulse_scoring.main import app as fastapi_app
from pulse_scoring.models import Presentation
from pulse_scoring.repositories import SqlVoteStore
from pulse_scoring.services.registry import ScoringRegistry
from pulse_scoring.services.vote_service import VoteService

TEST_DB_URL = "sqlite://"

_PRESENTATION_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def store(db_session: Session) -> SqlVoteStore:
    return SqlVoteStore(db_session)


@pytest.fixture()
def registry(db_session: Session) -> ScoringRegistry:
    """Registry seeded with the default judge categories."""
    registry = ScoringRegistry(db_session)
    registry.seed_defaults()
    return registry


@pytest.fixture()
def vote_service(store: SqlVoteStore, registry: ScoringRegistry) -> VoteService:
    return VoteService(store, registry)


@pytest.fixture()
def make_presentation(db_session: Session) -> Callable[..., Presentation]:
    """Factory persisting presentations with unique ids."""

    def _make(**overrides: Any) -> Presentation:
        number = next(_PRESENTATION_COUNTER)
        fields: dict[str, Any] = {
            "id": f"pres-{number}",
            "title": f"Test Presentation {number}",
            "authors": ["A. Author"],
            "room": "AZANIA",
        }
        fields.update(overrides)
        presentation = Presentation(**fields)
        db_session.add(presentation)
        db_session.flush()
        return presentation

    return _make


@pytest.fixture()
def presentation(make_presentation: Callable[..., Presentation]) -> Presentation:
    return make_presentation()


@pytest.fixture()
def plain_session() -> Iterator[Session]:
    """Session on a private database, without the savepoint harness.

    Use it where a test needs real commits and rollbacks.
    """
    private_engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=private_engine)
    session = Session(private_engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        private_engine.dispose()


def judge_ratings(*scores: int) -> list[dict[str, Any]]:
    """Ratings for the default categories, in registry order."""
    categories = ["technical", "delivery", "visuals", "relevance", "experience"]
    return [
        {"categoryId": category, "score": score}
        for category, score in zip(categories, scores, strict=False)
    ]


def auth_headers(user_id: str, role: str) -> dict[str, str]:
    token = create_access_token(user_id, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def judge_headers() -> dict[str, str]:
    """Return authorization headers for a judge."""
    return auth_headers("judge-1", "judge")


@pytest.fixture()
def spectator_headers() -> dict[str, str]:
    """Return authorization headers for a spectator."""
    return auth_headers("spectator-1", "spectator")


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    """Return authorization headers for an admin."""
    return auth_headers("admin-1", "admin")
