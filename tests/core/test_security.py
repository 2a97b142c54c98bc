# tests/core/test_security.py
import pytest
from datetime import timedelta
from fastapi import HTTPException

from app.core.security import (
    create_access_token, get_password_hash, verify_backend_token, verify_google_id_token, verify_password,
)
from app.core.config import settings # To get GOOGLE_CLIENT_ID

@pytest.mark.asyncio
async def test_verify_google_id_token_success(mocker):
    mock_google_verify = mocker.patch("google.oauth2.id_token.verify_oauth2_token")
    mock_payload = {
        "iss": "accounts.google.com",
        "sub": "test_google_user_123",
        "aud": settings.GOOGLE_CLIENT_ID,
        "email": "test@example.com",
        "email_verified": True,
        "name": "Test User",
        "picture": "http://example.com/pic.jpg",
        "exp": 9999999999 # A future timestamp
    }
    mock_google_verify.return_value = mock_payload

    token_str = "fake_google_id_token"
    payload = await verify_google_id_token(token_str)

    assert payload == mock_payload
    mock_google_verify.assert_called_once_with(
        token_str, mocker.ANY, settings.GOOGLE_CLIENT_ID
    )

@pytest.mark.asyncio
async def test_verify_google_id_token_invalid_issuer(mocker):
    mock_google_verify = mocker.patch("google.oauth2.id_token.verify_oauth2_token")
    mock_google_verify.return_value = {
        "iss": "not.google.com", # Invalid issuer
        "sub": "test_google_user_123",
        "aud": settings.GOOGLE_CLIENT_ID,
        "exp": 9999999999
    }

    with pytest.raises(HTTPException) as exc_info:
        await verify_google_id_token("fake_token")
    assert exc_info.value.status_code == 401
    assert "Could not validate Google credentials" in str(exc_info.value.detail)

@pytest.mark.asyncio
async def test_verify_google_id_token_value_error_from_google_lib(mocker):
    mock_google_verify = mocker.patch("google.oauth2.id_token.verify_oauth2_token")
    mock_google_verify.side_effect = ValueError("Google lib validation failed")

    with pytest.raises(HTTPException) as exc_info:
        await verify_google_id_token("fake_token")
    assert exc_info.value.status_code == 401

@pytest.mark.asyncio
async def test_verify_google_id_token_unexpected_error(mocker):
    mocker.patch("google.oauth2.id_token.verify_oauth2_token", side_effect=RuntimeError("network down"))

    with pytest.raises(HTTPException) as exc_info:
        await verify_google_id_token("fake_token")
    assert exc_info.value.status_code == 500

def test_password_hash_roundtrip():
    hashed = get_password_hash("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)

@pytest.mark.asyncio
async def test_backend_token_carries_subject():
    token = create_access_token({"sub": "player_1"})
    payload = await verify_backend_token(token)
    assert payload["sub"] == "player_1"
    assert "exp" in payload

@pytest.mark.asyncio
async def test_expired_backend_token_is_rejected():
    token = create_access_token({"sub": "player_1"}, expires_delta=timedelta(seconds=-10))
    with pytest.raises(HTTPException) as exc_info:
        await verify_backend_token(token)
    assert exc_info.value.status_code == 401

@pytest.mark.asyncio
async def test_tampered_backend_token_is_rejected():
    token = create_access_token({"sub": "player_1"})
    with pytest.raises(HTTPException):
        await verify_backend_token(token.rsplit(".", 1)[0] + ".c2lnbmF0dXJl")
