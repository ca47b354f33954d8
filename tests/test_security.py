import time

import pytest
from fastapi import HTTPException
from jose import jwt

from src.backend.utils.security import (
    JWT_ALG,
    JWT_SECRET,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("s3cret")
    assert hashed.startswith("$argon2")
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret", "")


def test_access_token_round_trip():
    token = create_access_token({"sub": "admin@example.com"})
    assert decode_access_token(token)["sub"] == "admin@example.com"


def test_expired_or_tampered_token_is_rejected():
    expired = jwt.encode({"sub": "a", "exp": int(time.time()) - 3600}, JWT_SECRET, algorithm=JWT_ALG)
    with pytest.raises(HTTPException) as exc:
        decode_access_token(expired)
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException):
        decode_access_token(create_access_token({"sub": "a"}) + "x")
