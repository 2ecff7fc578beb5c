"""Shared harness for API tests: app over a fresh in-memory database per test."""

import os
import unittest
from typing import Any

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from couponx.core.database import get_db
from couponx.core.rate_limit import auth_rate_limit, general_rate_limit
from couponx.main import app
from couponx.models import Base, User

API = "/api/v1"
PASSWORD = "Passw0rd"


class ApiTestCase(unittest.TestCase):
    """Each test gets an empty schema, cleared rate limit counters and a TestClient."""

    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        # Cleanups run last-in first-out: sessions from db() close before the schema goes.
        self.addCleanup(self.engine.dispose)
        Base.metadata.create_all(self.engine)
        self.addCleanup(Base.metadata.drop_all, self.engine)
        self.Session = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.addCleanup(app.dependency_overrides.clear)
        general_rate_limit.reset()
        auth_rate_limit.reset()
        self.client = TestClient(app)

    def db(self) -> Session:
        session = self.Session()
        self.addCleanup(session.close)
        return session

    def register(self, username: str = "alice", email: str | None = None, password: str = PASSWORD) -> dict[str, Any]:
        """Register and return the response data (user + tokens); fails the test on error."""
        resp = self.client.post(
            f"{API}/auth/register",
            json={"username": username, "email": email or f"{username}@example.com", "password": password},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    def login(self, email: str, password: str = PASSWORD):
        return self.client.post(f"{API}/auth/login", json={"email": email, "password": password})

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def set_user(self, user_id: int, **fields: Any) -> None:
        """Write columns directly, e.g. to promote a user to admin."""
        db = self.db()
        user = db.get(User, user_id)
        for name, value in fields.items():
            setattr(user, name, value)
        db.commit()
