"""Staff password hashing and access tokens."""

from datetime import timedelta

from app.core.security import (
    create_access_token,
    create_staff_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


def test_password_round_trip():
    hashed = get_password_hash("s3cret")
    assert hashed != "s3cret"
    assert verify_password("s3cret", hashed)
    assert not verify_password("wrong", hashed)


def test_malformed_hash_is_a_mismatch():
    assert verify_password("s3cret", "not-a-bcrypt-hash") is False


def test_staff_token_carries_shop_scope():
    payload = decode_access_token(create_staff_token(7, "waiter", "staff", 3))
    assert payload["sub"] == "7"
    assert payload["username"] == "waiter"
    assert payload["role"] == "staff"
    assert payload["shop_id"] == 3
    assert "jti" in payload


def test_expired_token_rejected():
    token = create_staff_token(7, "waiter", "staff", 3, expires_delta=timedelta(seconds=-5))
    assert decode_access_token(token) is None


def test_token_without_shop_rejected():
    token = create_access_token({"sub": "7", "username": "waiter", "role": "staff"})
    assert decode_access_token(token) is None


def test_garbage_token_rejected():
    assert decode_access_token("not.a.token") is None
