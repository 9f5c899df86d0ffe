"""Tests for taskhub.services.auth — SessionService against a fake provider."""

import pytest

from taskhub.engine.errors import TaskHubSessionError
from taskhub.services.auth import AuthProvider, AuthSession, SessionService


class FakeProvider(AuthProvider):

    def __init__(self):
        self.passwords = {"ann@x.io": "secret"}
        self.codes = {"good-code": "oauth@x.io"}
        self.fail_sign_out = False
        self.signed_out = []

    async def sign_in_with_password(self, email, password):
        if self.passwords.get(email) != password:
            raise RuntimeError("invalid_grant")
        return AuthSession(email=email, access_token="tok")

    async def exchange_code_for_session(self, code):
        if code not in self.codes:
            raise RuntimeError("bad code")
        return AuthSession(email=self.codes[code], access_token="tok")

    async def sign_out(self, session):
        if self.fail_sign_out:
            raise ConnectionError("provider down")
        self.signed_out.append(session.email)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sessions(provider, dashboard):
    return SessionService(provider, dashboard)


class TestSignIn:

    @pytest.mark.asyncio
    async def test_creates_member_on_first_sign_in(self, sessions, sql_store):
        session, member = await sessions.sign_in("ann@x.io", "secret")
        assert session.email == "ann@x.io"
        assert member.email == "ann@x.io"
        assert member.role == "user"
        rows = await sql_store.select("members")
        assert [r["email"] for r in rows] == ["ann@x.io"]

    @pytest.mark.asyncio
    async def test_existing_member_reused(self, sessions, seed):
        existing = await seed.member("ann@x.io", "Ann")
        _, member = await sessions.sign_in("ann@x.io", "secret")
        assert member.id == existing["id"]
        assert member.full_name == "Ann"

    @pytest.mark.asyncio
    async def test_bad_password(self, sessions):
        with pytest.raises(TaskHubSessionError, match="Invalid login credentials"):
            await sessions.sign_in("ann@x.io", "wrong")


class TestOAuth:

    @pytest.mark.asyncio
    async def test_code_exchange(self, sessions):
        session, member = await sessions.complete_oauth("good-code")
        assert member.email == "oauth@x.io"
        assert session.access_token == "tok"

    @pytest.mark.asyncio
    async def test_missing_code(self, sessions):
        with pytest.raises(TaskHubSessionError, match="Missing authorization code"):
            await sessions.complete_oauth("")

    @pytest.mark.asyncio
    async def test_failed_exchange(self, sessions):
        with pytest.raises(TaskHubSessionError, match="Authentication failed"):
            await sessions.complete_oauth("expired")


class TestSignOut:

    @pytest.mark.asyncio
    async def test_clears_cache(self, sessions, provider, dashboard):
        session, member = await sessions.sign_in("ann@x.io", "secret")
        await dashboard.get_dashboard_data(member.id)
        assert dashboard.cache.keys()

        await sessions.sign_out(session)
        assert provider.signed_out == ["ann@x.io"]
        assert dashboard.cache.keys() == []

    @pytest.mark.asyncio
    async def test_failed_sign_out_still_clears_cache(self, sessions, provider, dashboard):
        session, _ = await sessions.sign_in("ann@x.io", "secret")
        assert dashboard.cache.keys()
        provider.fail_sign_out = True

        with pytest.raises(TaskHubSessionError, match="Sign-out failed"):
            await sessions.sign_out(session)
        assert dashboard.cache.keys() == []
