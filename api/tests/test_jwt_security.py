"""Bearer token validation tests."""
from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.security import create_access_token, decode_token
from app.core.time import utc_now

ISSUER = "https://identity.example.com"
AUDIENCE = "risk-register"


@pytest.fixture
def strict_claims(monkeypatch):
    monkeypatch.setattr(settings, "JWT_ISSUER", ISSUER, raising=False)
    monkeypatch.setattr(settings, "JWT_AUDIENCE", AUDIENCE, raising=False)


def _signed(claims, algorithm=None):
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=algorithm or settings.ALGORITHM)


def test_round_trip_without_issuer_or_audience():
    payload = decode_token(create_access_token({"sub": "analyst@example.com"}))
    assert payload["sub"] == "analyst@example.com"
    assert "iss" not in payload


def test_issuer_and_audience_are_stamped(strict_claims):
    payload = decode_token(create_access_token({"sub": "analyst@example.com"}))

    assert payload is not None
    assert payload["iss"] == ISSUER
    assert payload["aud"] == AUDIENCE


@pytest.mark.parametrize("override", [
    {"iss": "https://elsewhere.example.com"},
    {"aud": "another-service"},
    {"exp": utc_now() - timedelta(minutes=1)},
])
def test_bad_claims_rejected(strict_claims, override):
    claims = {
        "sub": "analyst@example.com",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": utc_now() + timedelta(minutes=5),
    }
    claims.update(override)
    assert decode_token(_signed(claims)) is None


def test_wrong_algorithm_rejected(strict_claims):
    claims = {
        "sub": "analyst@example.com",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": utc_now() + timedelta(minutes=5),
    }
    assert decode_token(_signed(claims, algorithm="HS512")) is None


def test_garbage_token_rejected():
    assert decode_token("not-a-jwt") is None


class TestCurrentUser:

    def test_unknown_user_is_401(self, client, db_session):
        token = create_access_token({"sub": "ghost@example.com"})
        response = client.get("/risks/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_inactive_user_is_401(self, client, admin_user, admin_headers, db_session):
        admin_user.is_active = False
        db_session.commit()
        response = client.get("/risks/", headers=admin_headers)
        assert response.status_code == 401

    def test_token_without_subject_is_401(self, client, db_session):
        token = _signed({"exp": utc_now() + timedelta(minutes=5)})
        response = client.get("/risks/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
