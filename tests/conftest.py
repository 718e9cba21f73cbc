"""Shared fixtures: an in-process MongoDB (mongomock) and a fake identity verifier."""

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import CallerIdentity
from config import Settings
from database import Store
from forms import FormCatalog
from schemas import FieldInput
from submissions import SubmissionStore

OWNER = CallerIdentity(user_id="owner-1")
OTHER = CallerIdentity(user_id="other-2")

OWNER_HEADERS = {"Authorization": "Bearer owner-token"}
OTHER_HEADERS = {"Authorization": "Bearer other-token"}


class FakeVerifier:
    """Maps known test tokens to user ids; anything else is invalid."""

    def __init__(self, tokens):
        self.tokens = tokens

    def verify(self, token):
        return self.tokens.get(token)


@pytest.fixture
def database():
    return mongomock.MongoClient()["smartform_test"]


@pytest.fixture
def store(database):
    return Store(database)


@pytest.fixture
def catalog(store):
    return FormCatalog(store)


@pytest.fixture
def submissions(store, catalog):
    return SubmissionStore(store, catalog)


@pytest.fixture
def sample_fields():
    return [
        FieldInput(label="Name", type="text", required=True),
        FieldInput(label="Email", type="email"),
        FieldInput(label="Colour", type="select", options=["red", "green"]),
    ]


@pytest.fixture
def form(catalog, sample_fields):
    return catalog.create_form(OWNER, "Signup", sample_fields, description="Event signup", is_public=True)


@pytest.fixture
def settings():
    return Settings(submission_policy="per_field")


@pytest.fixture
def client(database, settings):
    from main import create_app

    app = create_app(
        settings,
        database=database,
        verifier=FakeVerifier({"owner-token": OWNER.user_id, "other-token": OTHER.user_id}),
    )
    with TestClient(app) as c:
        yield c
