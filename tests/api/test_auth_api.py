# tests/api/test_auth_api.py
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import crud_user

API = settings.API_V1_STR

def _google_payload(sub="g_123", email="g@example.com", name="Gina"):
    return {
        "iss": "accounts.google.com", "sub": sub, "aud": settings.GOOGLE_CLIENT_ID,
        "email": email, "email_verified": True, "name": name,
        "picture": "http://example.com/g.png", "exp": 9999999999,
    }

def test_signup_then_login(client: TestClient):
    response = client.post(f"{API}/auth/signup", json={"email": "new@example.com", "password": "secret1", "display_name": "Newbie"})
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["display_name"] == "Newbie"
    assert data["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    login = client.post(f"{API}/auth/login", json={"email": "NEW@example.com", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["user"]["uid"] == data["user"]["uid"]

def test_signup_duplicate_email(client: TestClient):
    body = {"email": "dup@example.com", "password": "secret1"}
    assert client.post(f"{API}/auth/signup", json=body).status_code == 201
    assert client.post(f"{API}/auth/signup", json=body).status_code == 409

def test_signup_validates_input(client: TestClient):
    assert client.post(f"{API}/auth/signup", json={"email": "not-an-email", "password": "secret1"}).status_code == 422
    assert client.post(f"{API}/auth/signup", json={"email": "short@example.com", "password": "123"}).status_code == 422

def test_login_wrong_password(client: TestClient):
    client.post(f"{API}/auth/signup", json={"email": "pw@example.com", "password": "secret1"})
    response = client.post(f"{API}/auth/login", json={"email": "pw@example.com", "password": "wrong!!"})
    assert response.status_code == 401

def test_login_unknown_email(client: TestClient):
    assert client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": "secret1"}).status_code == 401

def test_google_login_creates_then_reuses_user(client: TestClient, mocker, db_session: Session):
    mocker.patch("google.oauth2.id_token.verify_oauth2_token", return_value=_google_payload())

    first = client.post(f"{API}/auth/google/login", json={"google_id_token": "fake"})
    assert first.status_code == 200
    assert first.json()["user"]["display_name"] == "Gina"

    second = client.post(f"{API}/auth/google/login", json={"google_id_token": "fake"})
    assert second.json()["user"]["uid"] == first.json()["user"]["uid"]
    assert crud_user.get_user_by_google_id(db_session, "g_123") is not None

def test_google_login_invalid_token(client: TestClient, mocker):
    mocker.patch("google.oauth2.id_token.verify_oauth2_token", side_effect=ValueError("bad token"))
    response = client.post(f"{API}/auth/google/login", json={"google_id_token": "fake"})
    assert response.status_code == 401

def test_guest_login(client: TestClient):
    response = client.post(f"{API}/auth/guest-login", json={"display_name": "Visitor"})
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["uid"].startswith("mock_")
    assert user["is_guest"] is True

def test_guest_login_disabled(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_GUEST_LOGIN", False)
    assert client.post(f"{API}/auth/guest-login", json={}).status_code == 403

def test_me_requires_valid_token(client: TestClient):
    assert client.get(f"{API}/auth/me").status_code == 401
    assert client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

def test_me_returns_identity(client: TestClient):
    token = client.post(f"{API}/auth/guest-login", json={"display_name": "Me"}).json()["access_token"]
    response = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["display_name"] == "Me"
