import os

import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")

from finance_tracker.core.deps import get_store  # noqa: E402
from finance_tracker.db.dynamo import DynamoStore  # noqa: E402
from finance_tracker.main import app  # noqa: E402


@pytest.fixture
def store():
    with mock_aws():
        dynamo_store = DynamoStore(
            region="eu-west-1",
            users_table="test-users",
            expenses_table="test-expenses",
            goals_table="test-savings-goals",
        )
        dynamo_store.ensure_tables()
        yield dynamo_store


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register_user(client):
    def _register(email="alice@example.com", name="Alice", password="secret123"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register


@pytest.fixture
def auth_headers(register_user):
    headers, _ = register_user()
    return headers
