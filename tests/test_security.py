from datetime import datetime, timedelta, timezone

import jwt
import pytest

from ollama_chat.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_hash_is_not_plaintext_and_verifies():
    h = hash_password("s3cret")
    assert h != "s3cret"
    assert "s3cret" not in h
    assert verify_password("s3cret", h)
    assert not verify_password("wrong", h)


def test_hash_rejects_blank_password():
    with pytest.raises(ValueError, match="password_blank"):
        hash_password("")


def test_verify_handles_garbage():
    assert not verify_password("x", "")
    assert not verify_password("", hash_password("x"))
    assert not verify_password("x", "not-a-real-hash")


def test_token_roundtrip_identity():
    token = create_access_token(secret="k", user_id=7, role="admin")
    assert decode_access_token(token=token, secret="k") == {"id": 7, "role": "admin"}


def test_token_payload_shape():
    token = create_access_token(secret="k", user_id=7, role="user")
    payload = jwt.decode(token, "k", algorithms=["HS256"])
    assert payload["user"] == {"id": 7, "role": "user"}
    assert payload["exp"] - payload["iat"] == 3600


def test_token_accepted_before_one_hour():
    issued = datetime.now(timezone.utc) - timedelta(minutes=59)
    token = create_access_token(secret="k", user_id=1, role="user", now=issued)
    assert decode_access_token(token=token, secret="k")["id"] == 1


def test_token_rejected_after_one_hour():
    issued = datetime.now(timezone.utc) - timedelta(minutes=61)
    token = create_access_token(secret="k", user_id=1, role="user", now=issued)
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token=token, secret="k")


def test_token_wrong_secret_rejected():
    token = create_access_token(secret="k", user_id=1, role="user")
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token=token, secret="other")


def test_token_without_user_claim_rejected():
    exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
    token = jwt.encode({"sub": "1", "exp": exp}, "k", algorithm="HS256")
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token=token, secret="k")


def test_token_without_expiry_rejected():
    token = jwt.encode({"user": {"id": 1, "role": "user"}}, "k", algorithm="HS256")
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token=token, secret="k")


def test_blank_token_rejected():
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token="", secret="k")
