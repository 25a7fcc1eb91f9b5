import os

# Must be set before the app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_PROVIDER"] = "mock"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.infrastructure.database import Base, SessionLocal, engine
from app.infrastructure.mailer import MailDeliveryError
from app.infrastructure.storage import ObjectStorage, StorageError
from app.application.services.auth_service import create_user, create_user_token
from app.domain.models.user import UserRole
from app.interfaces.api.deps import get_mailer, get_storage


class FakeMailer:
    """Collects messages instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, message):
        if self.fail:
            raise MailDeliveryError("provider unavailable")
        self.sent.append(message)
        return {"provider": "fake", "accepted": message.to}

    async def aclose(self):
        pass

    def recipients(self):
        return [address for message in self.sent for address in message.to]


class FakeStorage:
    def __init__(self):
        self.fail = False
        self.objects = {}

    build_key = staticmethod(ObjectStorage.build_key)

    def upload(self, content, key, content_type):
        if self.fail:
            raise StorageError("bucket unavailable")
        self.objects[key] = (content, content_type)
        return f"https://media.homefix.pt/{key}"


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(mailer, storage):
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage
    # No context manager: the lifespan (scheduler, real clients) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=UserRole.CLIENT, email=None, password="secret123", first_name="Ana", categories=None):
        counter["n"] += 1
        return create_user(
            db,
            email=email or f"{role.value}{counter['n']}@mail.pt",
            password=password,
            first_name=first_name,
            last_name="Silva",
            role=role,
            technician_categories=categories,
        )

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, first_name="Admin")


@pytest.fixture
def technician(make_user):
    return make_user(UserRole.TECHNICIAN, first_name="Carlos", categories=["Canalização"])


@pytest.fixture
def customer(make_user):
    return make_user(UserRole.CLIENT, first_name="Ana")


@pytest.fixture
def stranger(make_user):
    return make_user(UserRole.CLIENT, first_name="Rui")


@pytest.fixture
def create_request(client, auth_headers):
    def _create(owner, **overrides):
        payload = {
            "title": "Torneira a pingar",
            "description": "A torneira da cozinha não fecha.",
            "category": "Canalização",
            "price": 50,
        }
        payload.update(overrides)
        response = client.post("/api/requests", json=payload, headers=auth_headers(owner))
        assert response.status_code == 201, response.text
        return response.json()

    return _create
