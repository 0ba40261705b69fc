import mongomock
import pytest
from fastapi.testclient import TestClient

import settings
from auth import create_access_token, hash_password
from contact import get_contact_limiter
from database import ensure_indexes, get_db
from mailer import MailerError, get_mailer
from main import app
from rate_limit import RateLimiter
from revalidation import RevalidationResult, get_revalidator
from seo import SeoGenerator, get_seo_generator
from uploads import get_upload_root

ADMIN_PASSWORD = "secret123"


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingRevalidator:
    def __init__(self):
        self.calls = []

    def revalidate(self, paths=(), tags=()):
        self.calls.append((list(paths), list(tags)))
        return RevalidationResult(paths=list(paths), tags=list(tags))

    def revalidate_targets(self, targets):
        paths, tags = targets
        return self.revalidate(paths, tags)

    @property
    def paths(self):
        return [p for paths, _ in self.calls for p in paths]

    @property
    def tags(self):
        return [t for _, tags in self.calls for t in tags]


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, sender, to, subject, html):
        if self.fail:
            raise MailerError("provider down")
        self.sent.append({"sender": sender, "to": to, "subject": subject, "html": html})


@pytest.fixture
def db():
    database = mongomock.MongoClient().db
    ensure_indexes(database)
    return database


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(limit=5, window_seconds=60, clock=clock)


@pytest.fixture
def revalidator():
    return RecordingRevalidator()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def upload_root(tmp_path):
    return str(tmp_path)


@pytest.fixture
def client(db, limiter, revalidator, mailer, upload_root, monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "test-secret")
    monkeypatch.setattr(settings, "REVALIDATE_SECRET", "sync-secret")
    monkeypatch.setattr(settings, "TRUST_PROXY", False)
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_contact_limiter] = lambda: limiter
    app.dependency_overrides[get_revalidator] = lambda: revalidator
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_upload_root] = lambda: upload_root
    app.dependency_overrides[get_seo_generator] = lambda: SeoGenerator(None)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db):
    user = {"username": "admin", "password": hash_password(ADMIN_PASSWORD), "isAdmin": True}
    user["_id"] = db["users"].insert_one(user).inserted_id
    return user


@pytest.fixture
def admin_token(client, admin_user):
    return create_access_token(admin_user)


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}
