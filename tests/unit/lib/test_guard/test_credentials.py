"""Unit tests for bearer extraction and JWT verification."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from pet_adoption_api.core.errors import CredentialError
from pet_adoption_api.core.security import create_access_token, create_refresh_token
from pet_adoption_api.lib.guard.credentials import (
    CredentialFailure,
    extract_bearer,
    has_jwt_structure,
    verify_credential,
)

SECRET = "test-secret-key-not-for-production"


def _token(**kwargs) -> str:
    return create_access_token("user-123", "staff", SECRET, **kwargs)


class TestExtractBearer:
    def test_bearer_scheme(self) -> None:
        assert extract_bearer("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        assert extract_bearer("bearer abc.def.ghi") == "abc.def.ghi"
        assert extract_bearer("BEARER abc.def.ghi") == "abc.def.ghi"

    def test_surrounding_whitespace_ignored(self) -> None:
        assert extract_bearer("  Bearer   abc.def.ghi  ") == "abc.def.ghi"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw) -> None:
        with pytest.raises(CredentialError) as exc_info:
            extract_bearer(raw)
        assert exc_info.value.kind == CredentialFailure.MISSING

    @pytest.mark.parametrize("raw", ["Bearer", "Bearer ", "Bearer abc def", "Token abc.def.ghi"])
    def test_malformed(self, raw) -> None:
        with pytest.raises(CredentialError) as exc_info:
            extract_bearer(raw)
        assert exc_info.value.kind == CredentialFailure.MALFORMED

    def test_bare_token_accepted_when_long_enough(self) -> None:
        token = "a" * 20
        assert extract_bearer(token) == token

    def test_short_bare_token_rejected(self) -> None:
        with pytest.raises(CredentialError) as exc_info:
            extract_bearer("a" * 19)
        assert exc_info.value.kind == CredentialFailure.MALFORMED

    def test_bare_minimum_is_configurable(self) -> None:
        assert extract_bearer("abcde", min_bare_length=5) == "abcde"


class TestHasJwtStructure:
    def test_real_token(self) -> None:
        assert has_jwt_structure(_token()) is True

    @pytest.mark.parametrize(
        "token",
        [
            "abc.def",
            "abc.def.ghi.jkl",
            "abc..ghi",
            "ab$.def.ghi",
            "a.def.ghi",
        ],
    )
    def test_rejects_non_jwt_shapes(self, token) -> None:
        assert has_jwt_structure(token) is False


class TestVerifyCredential:
    def test_valid_access_token(self) -> None:
        claims = verify_credential(f"Bearer {_token()}", SECRET)
        assert claims.subject == "user-123"
        assert claims.role == "staff"
        assert claims.token_type == "access"
        assert isinstance(claims.issued_at, float)

    def test_issued_at_keeps_sub_second_precision(self) -> None:
        issued = datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=UTC)
        token = _token(issued_at=issued, expires_minutes=60 * 24 * 365 * 10)
        claims = verify_credential(token, SECRET)
        assert claims.issued_at == pytest.approx(issued.timestamp())

    def test_refresh_token_reports_type(self) -> None:
        token = create_refresh_token("user-123", SECRET)
        claims = verify_credential(f"Bearer {token}", SECRET)
        assert claims.token_type == "refresh"
        assert claims.role is None

    def test_missing_header(self) -> None:
        with pytest.raises(CredentialError) as exc_info:
            verify_credential(None, SECRET)
        assert exc_info.value.kind == CredentialFailure.MISSING

    def test_garbage_is_malformed(self) -> None:
        with pytest.raises(CredentialError) as exc_info:
            verify_credential("Bearer not-a-jwt-at-all", SECRET)
        assert exc_info.value.kind == CredentialFailure.MALFORMED

    def test_wrong_secret_is_signature_invalid(self) -> None:
        token = create_access_token("user-123", "user", "another-secret-key-that-is-long-enough")
        with pytest.raises(CredentialError) as exc_info:
            verify_credential(f"Bearer {token}", SECRET)
        assert exc_info.value.kind == CredentialFailure.SIGNATURE_INVALID

    def test_expired(self) -> None:
        token = _token(issued_at=datetime.now(UTC) - timedelta(hours=2), expires_minutes=60)
        with pytest.raises(CredentialError) as exc_info:
            verify_credential(f"Bearer {token}", SECRET)
        assert exc_info.value.kind == CredentialFailure.EXPIRED
        assert "expired" in exc_info.value.message

    def test_not_yet_valid(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "sub": "user-123",
                "iat": now.timestamp(),
                "nbf": now + timedelta(hours=1),
                "exp": now + timedelta(hours=2),
            },
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(CredentialError) as exc_info:
            verify_credential(f"Bearer {token}", SECRET)
        assert exc_info.value.kind == CredentialFailure.NOT_YET_VALID

    def test_missing_subject_is_malformed(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode({"iat": now.timestamp(), "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")
        with pytest.raises(CredentialError) as exc_info:
            verify_credential(f"Bearer {token}", SECRET)
        assert exc_info.value.kind == CredentialFailure.MALFORMED

    def test_unsigned_token_is_malformed(self) -> None:
        now = datetime.now(UTC)
        token = jwt.encode({"sub": "user-123", "iat": now.timestamp(), "exp": now + timedelta(hours=1)}, None, "none")
        with pytest.raises(CredentialError) as exc_info:
            verify_credential(f"Bearer {token}", SECRET)
        assert exc_info.value.kind == CredentialFailure.MALFORMED

    def test_each_failure_has_its_own_message(self) -> None:
        messages = {kind: CredentialError(kind).message for kind in CredentialFailure}
        assert len(set(messages.values())) == len(CredentialFailure)
