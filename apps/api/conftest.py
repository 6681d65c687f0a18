import os

# Settings are read at import time, so the environment goes first
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_GATEWAY"] = "sandbox"
os.environ["SANDBOX_GATEWAY_SECRET"] = "test_env_gateway_secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
for name in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_SMS_FROM"):
    os.environ.pop(name, None)

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

import models  # noqa: F401
from database import build_engine, create_db_and_tables, get_session
from main import app
from models import Gender, UserRole
from services import SandboxGateway, credentials, get_payment_gateway

STRONG_PASSWORD = "Str0ng!Pass"
GATEWAY_SECRET = "test_gateway_secret"


@pytest.fixture(name="session")
def session_fixture():
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture(name="gateway")
def gateway_fixture():
    return SandboxGateway(GATEWAY_SECRET, key_id="rzp_test_key")


@pytest.fixture(name="client")
def client_fixture(session: Session, gateway: SandboxGateway):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def register_doctor(session: Session):
    """Register a doctor through the credential store (approved by default)"""
    def _register(email="asha.rao@cityhospital.in", name="Dr. Asha Rao", fee=500.0, approved=True, **fields):
        data = {
            "name": name,
            "email": email,
            "password": STRONG_PASSWORD,
            "department": "Cardiology",
            "specialization": ["Interventional Cardiology"],
            "experience": 12,
            "fee": fee,
            **fields,
        }
        identity, token = credentials.register(session, UserRole.DOCTOR, data)
        if approved:
            identity.user.is_approved = True
            session.add(identity.user)
            session.commit()
            session.refresh(identity.user)
        return identity, token
    return _register


@pytest.fixture
def register_patient(session: Session):
    def _register(email="ravi.kumar@cityhospital.in", name="Ravi Kumar", age=34, gender=Gender.MALE, **fields):
        data = {
            "name": name,
            "email": email,
            "password": STRONG_PASSWORD,
            "age": age,
            "gender": gender,
            "phone_number": "+919876543210",
            **fields,
        }
        return credentials.register(session, UserRole.PATIENT, data)
    return _register


@pytest.fixture
def bearer():
    def _headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}
    return _headers
