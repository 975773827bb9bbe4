import os
import sys
from pathlib import Path

# Must be set before models/ builds its engine
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from services import sessions  # noqa: E402

ALICE = {
    "username": "alice",
    "email": "alice@example.com",
    "full_name": "Alice Liddell",
    "password": "correct-horse",
}
BOB = {
    "username": "bob",
    "email": "bob@example.com",
    "full_name": "Bob Builder",
    "password": "battery-staple",
}


@pytest.fixture()
def app():
    app = create_app("testing")
    storage.drop_all()
    storage.reload()
    yield app
    storage.close()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    """Application context for calling the service layer directly."""
    with app.app_context():
        yield app


@pytest.fixture()
def alice(ctx):
    return sessions.register(**ALICE)


@pytest.fixture()
def bob(ctx):
    return sessions.register(**BOB)


def register(client, **overrides):
    body = dict(ALICE)
    body.update(overrides)
    return client.post("/api/v1/auth/register", json=body)


def login(client, identifier="alice", password=ALICE["password"], field="username"):
    return client.post("/api/v1/auth/login", json={field: identifier, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
