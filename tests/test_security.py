from datetime import timedelta

from teamdesk.core.security import (
    create_session_token,
    decode_session_token,
    generate_invitation_token,
    get_password_hash,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = get_password_hash("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


def test_account_without_password_never_matches():
    assert not verify_password("anything", None)


def test_session_token_carries_user():
    payload = decode_session_token(create_session_token("user-1", "a@example.com"))
    assert payload["sub"] == "user-1"
    assert payload["email"] == "a@example.com"


def test_expired_or_garbage_token_is_rejected():
    expired = create_session_token("user-1", "a@example.com", expires_delta=timedelta(seconds=-10))
    assert decode_session_token(expired) is None
    assert decode_session_token("not.a.jwt") is None


def test_invitation_tokens_are_unique_hex():
    first, second = generate_invitation_token(), generate_invitation_token()
    assert len(first) == 64
    int(first, 16)
    assert first != second
