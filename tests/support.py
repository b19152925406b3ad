"""Shared test fixtures: settings, in-memory SQLite database, and an app wired to it."""

import unittest
from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from userhub.core.config import Settings
from userhub.main import create_app
from userhub.models import Base

TEST_SECRET = "test-secret-for-unit-tests"
DEFAULT_PASSWORD = "secret1"


def make_settings(**overrides: Any) -> Settings:
    """Settings for tests: cheap bcrypt, fixed secret, abuse gate off unless overridden."""
    values: dict[str, Any] = {
        "APP_ENV": "dev",
        "JWT_SECRET": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
        "RATE_LIMIT_ENABLED": False,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


def make_engine() -> Engine:
    """Single-connection in-memory SQLite with the users table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


class DatabaseTestCase(unittest.TestCase):
    """Gives each test a fresh database and an open session."""

    def setUp(self) -> None:
        self.engine = make_engine()
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False)
        self.session: Session = self.SessionLocal()

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()


class ApiTestCase(DatabaseTestCase):
    """App built from test settings, with its session factory bound to the test database."""

    settings_overrides: dict[str, Any] = {}

    def setUp(self) -> None:
        super().setUp()
        self.settings = make_settings(**self.settings_overrides)
        self.app = create_app(self.settings)
        self.app.state.session_factory = self.SessionLocal

    def new_client(self, **kwargs: Any) -> TestClient:
        """A client with its own cookie jar (one per signed-in identity)."""
        return TestClient(self.app, **kwargs)

    def sign_up(
        self,
        client: TestClient,
        name: str = "Ann Lee",
        email: str = "ann@example.com",
        password: str = DEFAULT_PASSWORD,
        role: str | None = None,
    ):
        body = {"name": name, "email": email, "password": password}
        if role is not None:
            body["role"] = role
        return client.post("/api/auth/sign-up", json=body)

    def signed_in_client(
        self, email: str, role: str | None = None, name: str = "Test User"
    ) -> tuple[TestClient, int]:
        """Register a user through the API; return its client (cookie set) and id."""
        client = self.new_client()
        resp = self.sign_up(client, name=name, email=email, role=role)
        self.assertEqual(resp.status_code, 201, resp.text)
        return client, resp.json()["user"]["id"]
