"""
Unit tests for password hashing, JWT helpers and domain error payloads.
"""
import uuid
from datetime import timedelta
from decimal import Decimal

from apartment_manager.core.security import (
    ACCESS,
    REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    seconds_until_expiry,
    token_subject,
    verify_password,
)
from apartment_manager.services.errors import (
    AllocationMismatch,
    ReportNotFound,
    ReportValidationError,
    Unauthorized,
    UpstreamDataError,
)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse battery staple")
        assert hashed != "correct horse battery staple"
        assert verify_password("correct horse battery staple", hashed)
        assert not verify_password("wrong", hashed)


class TestTokens:
    def test_access_token_round_trip(self):
        user_id = uuid.uuid4()
        payload = decode_token(create_access_token(user_id, "tenant"), ACCESS)
        assert token_subject(payload) == user_id
        assert payload["role"] == "tenant"

    def test_type_is_enforced(self):
        token = create_refresh_token(uuid.uuid4())
        assert decode_token(token, ACCESS) is None
        assert decode_token(token, REFRESH)["type"] == "refresh"

    def test_refresh_tokens_are_unique(self):
        user_id = uuid.uuid4()
        first = decode_token(create_refresh_token(user_id))
        second = decode_token(create_refresh_token(user_id))
        assert first["jti"] != second["jti"]

    def test_expired_token_rejected(self):
        token = create_access_token(uuid.uuid4(), "tenant", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_garbage_rejected(self):
        assert decode_token("not-a-jwt") is None

    def test_bad_subject(self):
        assert token_subject({"sub": "not-a-uuid"}) is None
        assert token_subject({}) is None

    def test_seconds_until_expiry(self):
        payload = decode_token(create_refresh_token(uuid.uuid4()))
        assert 0 < seconds_until_expiry(payload) <= 7 * 86400
        assert seconds_until_expiry({"exp": 0}) == 0


class TestErrorPayloads:
    def test_status_codes(self):
        assert ReportValidationError("bad").status_code == 400
        assert Unauthorized().status_code == 403
        assert ReportNotFound().status_code == 404
        assert UpstreamDataError().status_code == 502

    def test_mismatch_carries_both_totals(self):
        err = AllocationMismatch(expected=Decimal("1000"), actual=Decimal("999.5"))
        assert err.status_code == 400
        assert err.to_dict() == {
            "detail": "Total allocated amount must equal the total budget",
            "total_budget": "1000.00",
            "total_allocated": "999.50",
        }
