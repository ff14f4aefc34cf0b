import pytest

from certhub.app import create_app
from certhub.models import db

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
        "FRONTEND_DIR": str(tmp_path),
        "PUBLIC_BASE_URL": None,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, username="alice", password="s3cret", organization="Acme Academy"):
    return client.post("/api/register", json={
        "username": username,
        "password": password,
        "organization": organization,
    })


def login(client, username="alice", password="s3cret"):
    return client.post("/api/login", json={"username": username, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    register(client)
    token = login(client).get_json()["token"]
    return bearer(token)


def certificate_payload(**overrides):
    payload = {
        "recipientName": "Jane Doe",
        "recipientEmail": "jane@example.org",
        "courseName": "Intro to Databases",
        "issuer": "Acme Academy",
        "grade": "A",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def issue(client, auth_headers):
    def _issue(**overrides):
        resp = client.post("/api/certificates", json=certificate_payload(**overrides), headers=auth_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return _issue
