import pytest

from auth import CallerIdentity, FirebaseVerifier, authenticate, parse_bearer
from errors import Unauthenticated


class StaticVerifier:
    def verify(self, token):
        return "user-9" if token == "good" else None


def test_parse_bearer():
    assert parse_bearer("Bearer abc.def") == "abc.def"
    assert parse_bearer("bearer abc") == "abc"


@pytest.mark.parametrize("header", [None, "", "abc", "Basic abc", "Bearer a b"])
def test_parse_bearer_rejects_malformed(header):
    with pytest.raises(Unauthenticated):
        parse_bearer(header)


def test_authenticate_yields_identity():
    assert authenticate(StaticVerifier(), "Bearer good") == CallerIdentity(user_id="user-9")


def test_authenticate_rejects_unknown_token():
    with pytest.raises(Unauthenticated) as exc_info:
        authenticate(StaticVerifier(), "Bearer bad")
    assert exc_info.value.message == "Invalid token"


def test_unconfigured_firebase_rejects_everything():
    verifier = FirebaseVerifier(None)
    assert verifier.verify("any-token") is None


@pytest.mark.parametrize("service_account", ["{not json", "{}", "/nonexistent/service-account.json"])
def test_malformed_firebase_credentials_reject_everything(service_account):
    verifier = FirebaseVerifier(service_account)

    assert verifier.app is None
    assert verifier.verify("any-token") is None
