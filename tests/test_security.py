from datetime import timedelta

from components.core.security import create_access_token, get_password_hash, token_subject, verify_password


def test_password_hash_is_salted_and_verifies():
    first = get_password_hash("client-pass")
    second = get_password_hash("client-pass")
    assert first != second
    assert verify_password("client-pass", first)
    assert not verify_password("client-pas", first)
    assert not verify_password("client-pass", "no-separator")
    assert get_password_hash("client-pass", salt="abc") == get_password_hash("client-pass", salt="abc")


def test_token_subject():
    assert token_subject(create_access_token(data={"sub": "7"})) == 7
    assert token_subject(create_access_token(data={"sub": "7"}, expires_delta=timedelta(minutes=-1))) is None
    assert token_subject(create_access_token(data={"role": "admin"})) is None
    assert token_subject("not-a-token") is None
    assert token_subject(None) is None
