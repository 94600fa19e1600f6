from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from orderpay.auth import CredentialVerifier
from orderpay.errors import InvalidCredentials, MissingCredentials
from orderpay.users import check_password, hash_password

SECRET = "jwt-test-secret"


def test_issue_then_verify():
    verifier = CredentialVerifier(SECRET)
    token = verifier.issue("user-1")

    assert verifier.verify(f"Bearer {token}") == "user-1"


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer", "Bearer a b"])
def test_missing_or_malformed_header(header):
    with pytest.raises(MissingCredentials):
        CredentialVerifier(SECRET).verify(header)


def test_wrong_secret_is_invalid():
    token = CredentialVerifier("other-secret").issue("user-1")

    with pytest.raises(InvalidCredentials):
        CredentialVerifier(SECRET).verify(f"Bearer {token}")


def test_expired_token_is_invalid():
    token = CredentialVerifier(SECRET, expires=timedelta(seconds=-10)).issue("user-1")

    with pytest.raises(InvalidCredentials):
        CredentialVerifier(SECRET).verify(f"Bearer {token}")


def test_token_without_subject_is_invalid():
    exp = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidCredentials):
        CredentialVerifier(SECRET).verify(f"Bearer {token}")


def test_password_hash_is_salted_and_checkable():
    first = hash_password("s3cret")
    second = hash_password("s3cret")

    assert first != second
    assert "s3cret" not in first
    assert check_password("s3cret", first)
    assert not check_password("wrong", first)
