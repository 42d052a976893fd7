import pytest
from fastapi import HTTPException
from firebase_admin import auth as firebase_auth

from app import auth


@pytest.fixture
def verifier(monkeypatch):
    """Replace Firebase token verification with a stub returning ``claims``"""
    state = {"claims": {"uid": "u1", "email": "a@example.com", "email_verified": True}, "error": None}

    def verify_id_token(token, app=None):
        if state["error"] is not None:
            raise state["error"]
        return state["claims"]

    monkeypatch.setattr(auth.firebase_auth, "verify_id_token", verify_id_token)
    monkeypatch.setattr(auth, "get_firebase_app", lambda: None)
    return state


def test_valid_token(verifier):
    user = auth.verify_token("a.b.c")

    assert user.uid == "u1"
    assert user.email == "a@example.com"
    assert user.email_verified is True
    assert user.id_token == "a.b.c"
    assert user.as_auth_user().id_token == "a.b.c"


def test_sub_claim_is_accepted(verifier):
    verifier["claims"] = {"sub": "u2"}

    assert auth.verify_token("a.b.c").uid == "u2"


def test_malformed_token(verifier):
    with pytest.raises(HTTPException) as exc_info:
        auth.verify_token("not-a-jwt")

    assert exc_info.value.status_code == 401


def test_expired_token(verifier):
    verifier["error"] = firebase_auth.ExpiredIdTokenError("expired", cause=None)

    with pytest.raises(HTTPException) as exc_info:
        auth.verify_token("a.b.c")

    assert exc_info.value.status_code == 401
    assert exc_info.value.headers == {"X-Token-Expired": "true"}


def test_invalid_token(verifier):
    verifier["error"] = firebase_auth.InvalidIdTokenError("bad signature")

    with pytest.raises(HTTPException) as exc_info:
        auth.verify_token("a.b.c")

    assert exc_info.value.status_code == 401


def test_token_without_uid(verifier):
    verifier["claims"] = {"email": "a@example.com"}

    with pytest.raises(HTTPException) as exc_info:
        auth.verify_token("a.b.c")

    assert exc_info.value.status_code == 401
