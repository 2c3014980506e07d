"""
Login lockout and refresh-token revocation against an in-memory Redis stand-in.
"""
import asyncio

import pytest

from apartment_manager.core import redis as auth_state
from apartment_manager.core.config import settings


class FakeRedis:
    def __init__(self):
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def incr(self, key):
        value = int(self.values.get(key, 0)) + 1
        self.values[key] = str(value)
        return value

    async def expire(self, key, seconds):
        self.ttls[key] = seconds

    async def ttl(self, key):
        return self.ttls.get(key, -1)

    async def get(self, key):
        return self.values.get(key)

    async def delete(self, key):
        self.values.pop(key, None)
        self.ttls.pop(key, None)

    async def setex(self, key, seconds, value):
        self.values[key] = value
        self.ttls[key] = seconds

    async def exists(self, key):
        return int(key in self.values)


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(auth_state, "get_redis", lambda: fake)
    return fake


def run(coro):
    return asyncio.run(coro)


class TestLockout:
    def test_not_locked_below_threshold(self, fake_redis):
        for _ in range(settings.login_max_attempts - 1):
            run(auth_state.record_login_failure("manager@example.com"))
        assert run(auth_state.lockout_remaining("manager@example.com")) == 0

    def test_locked_at_threshold(self, fake_redis):
        for _ in range(settings.login_max_attempts):
            run(auth_state.record_login_failure("manager@example.com"))
        assert run(auth_state.lockout_remaining("manager@example.com")) == settings.login_lockout_minutes * 60

    def test_email_is_case_insensitive(self, fake_redis):
        for _ in range(settings.login_max_attempts):
            run(auth_state.record_login_failure("Manager@Example.com "))
        assert run(auth_state.lockout_remaining("manager@example.com")) > 0

    def test_clear(self, fake_redis):
        for _ in range(settings.login_max_attempts):
            run(auth_state.record_login_failure("manager@example.com"))
        run(auth_state.clear_login_failures("manager@example.com"))
        assert run(auth_state.lockout_remaining("manager@example.com")) == 0


class TestRevocation:
    def test_revoke(self, fake_redis):
        assert not run(auth_state.is_revoked("abc"))
        run(auth_state.revoke_token("abc", 60))
        assert run(auth_state.is_revoked("abc"))

    def test_expired_token_not_stored(self, fake_redis):
        run(auth_state.revoke_token("abc", 0))
        assert not run(auth_state.is_revoked("abc"))
