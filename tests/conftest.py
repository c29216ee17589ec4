import os
import tempfile
from datetime import datetime, timedelta

# Settings are read once at import time, so the environment must be in place
# before anything from clinicaflow is imported.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_INIT_MODE"] = "off"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-access-secret-0123456789abcdef0123456789"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef012345678"
os.environ["LOG_FILE"] = os.path.join(tempfile.gettempdir(), "clinicaflow-tests", "app.log")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from clinicaflow.core.database import Base, SessionLocal, engine, get_db
from clinicaflow.services.audit_service import audit_service
from clinicaflow.services.email_service import EmailService
from clinicaflow.services.rate_limiter import rate_limiter
from clinicaflow.services.session_service import SessionService
from clinicaflow.services.user_repository import UserRepository


class RecordingMailer(EmailService):
    """Captures reset emails instead of talking to SMTP."""

    def __init__(self, deliver: bool = True):
        super().__init__()
        self.deliver = deliver
        self.sent = []

    def send_password_reset_email(self, email, code, user_name=None):
        self.sent.append({"email": email, "code": code, "user_name": user_name})
        return self.deliver

    def last_code_for(self, email):
        for message in reversed(self.sent):
            if message["email"] == email:
                return message["code"]
        return None


class FrozenClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 5, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(db, mailer, clock):
    return SessionService(UserRepository(db), mailer, audit=audit_service, clock=clock)


@pytest.fixture
def client(mailer):
    from clinicaflow.api.deps import get_session_service
    from clinicaflow.main import app

    def _service(session=Depends(get_db)):
        return SessionService(UserRepository(session), mailer, audit=audit_service)

    app.dependency_overrides[get_session_service] = _service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def register(service):
    def _register(email="alice@example.com", password="secret1", name="Alice", clinic="Clínica Sorriso"):
        return service.register(name, email, password, clinic_name=clinic)
    return _register
