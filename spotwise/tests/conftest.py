import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./spotwise-dev.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

# FORCE model registration
import spotwise.models  # noqa: E402,F401
from spotwise.core.config import Settings  # noqa: E402
from spotwise.core.enums import ActorRole, ProviderStatus  # noqa: E402
from spotwise.db.base import Base  # noqa: E402
from spotwise.main import create_app  # noqa: E402
from spotwise.policies.rbac import Principal  # noqa: E402
from spotwise.schemas.auth import RegisterRequest  # noqa: E402
from spotwise.tests.helpers import ORIGIN, FakeClock  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'spotwise.db'}",
        jwt_secret_key=os.environ["JWT_SECRET_KEY"],
        sweep_interval_seconds=0,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, clock):
    application = create_app(settings, clock=clock)
    Base.metadata.create_all(bind=application.state.engine)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def svc(app):
    return app.state


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_actor(app, db):
    """
    Registers an account and returns (user, token, principal).
    Providers come back online unless online=False.
    """
    counter = {"n": 0}

    def _make(role="seeker", at=ORIGIN, skills=None, online=True, name=None):
        counter["n"] += 1
        n = counter["n"]
        body = {
            "userName": name or f"{role}-{n}",
            "email": f"{role}{n}@example.com",
            "password": "secret123",
            "role": role,
            "contactNumber": f"90000000{n:02d}",
        }
        if at is not None:
            body["location"] = {"type": "Point", "coordinates": list(at)}
        if role == "provider":
            body["skills"] = skills or ["plumbing"]

        accounts = app.state.accounts
        user, token = accounts.register(db, RegisterRequest.model_validate(body))
        principal = Principal(actor_id=str(user.id), role=ActorRole(role))
        if role == "provider" and online:
            accounts.set_status(db, principal, ProviderStatus.ONLINE)
        return SimpleNamespace(user=user, token=token, principal=principal, id=user.id)

    return _make


@pytest.fixture
def make_request(app, db):
    def _make(seeker, category="plumbing", at=ORIGIN, duration=30):
        return app.state.lifecycle.create(
            db,
            seeker.principal,
            {
                "category": category,
                "description": "Leaking kitchen tap",
                "contactNumber": "9000000099",
                "location": {"type": "Point", "coordinates": list(at)},
                "duration": duration,
            },
        )

    return _make
