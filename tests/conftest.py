import pytest
from fastapi.testclient import TestClient

from nfc_profiles.main import create_app
from nfc_profiles.store import InMemoryProfileStore


@pytest.fixture
def store():
    return InMemoryProfileStore(
        {
            "A1": {
                "uid": "u1",
                "claimed": True,
                "name": "Ann",
                "firstName": "Ann",
                "lastName": "Lee",
                "email": "ann@example.com",
                "organization": "Acme, Inc.",
                "website": "https://ann.dev",
                "lastUpdated": "2024-03-01T10:00:00Z",
                "viewCount": 7,
                "views": 5,
            },
            "A2": {
                "lastUpdated": "2024-05-01T00:00:00Z",
            },
            "A3": {
                "uid": "u3",
                "name": 'Bob "B" Ray',
                "views": 2,
                "lastUpdated": "2024-04-01T00:00:00Z",
            },
        }
    )


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as test_client:
        yield test_client
