"""
Tests for the remote-first client and its local fallback.
"""

import httpx
import pytest

from auth.exceptions import Conflict, InvalidCredentials, InvalidOtp, ValidationError
from client.auth_client import AuthClient
from client.strategies import LocalAuthStrategy, RemoteAuthStrategy
from database.kv_store import JsonKeyValueStore
from main import create_app


def _client(storage, transport=None, delivered=None):
    remote = RemoteAuthStrategy("http://backend.test", transport=transport) if transport else None
    return AuthClient(
        storage,
        remote,
        LocalAuthStrategy(storage),
        deliver=lambda email, code, ttl: (delivered if delivered is not None else []).append(code),
    )


def _failing_transport(exc_cls=httpx.ConnectError):
    def handler(request):
        raise exc_cls("backend down", request=request)

    return httpx.MockTransport(handler)


def _static_transport(status_code, **kwargs):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status_code, **kwargs)

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


@pytest.fixture
def storage(tmp_path):
    return JsonKeyValueStore(tmp_path / "local_storage.json")


class TestFallbackDecision:
    @pytest.mark.asyncio
    async def test_network_failure_falls_back_to_seed_account(self, storage):
        client = _client(storage, _failing_transport())
        result = await client.authenticate("Admin@Heritage.com", "admin123")

        assert result.source == "local"
        assert result.token is None
        assert result.user.dashboard == "/admin/enthusiast-dashboard"
        assert client.current_user().role == "admin"

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, storage):
        client = _client(storage, _failing_transport(httpx.ReadTimeout))
        assert (await client.authenticate("user@heritage.com", "user123")).source == "local"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,kwargs",
        [
            (502, {"json": {"success": False, "message": "bad gateway"}}),
            (200, {"text": "<html>proxy page</html>"}),
            (200, {"json": {"ok": True}}),
            (200, {"json": {"success": True}}),
        ],
    )
    async def test_protocol_failure_falls_back(self, storage, status_code, kwargs):
        client = _client(storage, _static_transport(status_code, **kwargs))
        assert (await client.authenticate("creator@heritage.com", "creator123")).source == "local"

    @pytest.mark.asyncio
    async def test_remote_rejection_never_falls_back(self, storage):
        transport = _static_transport(401, json={"success": False, "message": "Invalid credentials"})
        client = _client(storage, transport)

        # Would succeed locally, but the backend's answer is final.
        with pytest.raises(InvalidCredentials):
            await client.authenticate("admin@heritage.com", "admin123")
        assert len(transport.calls) == 1
        assert client.current_user() is None

    @pytest.mark.asyncio
    async def test_remote_conflict_is_surfaced(self, storage):
        transport = _static_transport(409, json={"success": False, "message": "User with this email already exists"})
        client = _client(storage, transport)
        with pytest.raises(Conflict):
            await client.register("new@x.com", "secret1", "New", "user")
        assert storage.get("registeredUsers") is None

    @pytest.mark.asyncio
    async def test_remote_success_persists_session(self, storage):
        transport = _static_transport(
            200,
            json={
                "success": True,
                "user": {"email": "a@x.com", "name": "Alice", "role": "tour-guide"},
                "token": "jwt-token",
            },
        )
        client = _client(storage, transport)
        result = await client.authenticate("a@x.com", "secret1")

        assert result.source == "remote"
        assert client.auth_token() == "jwt-token"
        assert client.current_user().dashboard == "/admin/tour-guide-dashboard"

        client.logout()
        assert client.current_user() is None
        assert client.auth_token() is None


class TestAgainstRealBackend:
    @pytest.mark.asyncio
    async def test_register_and_login_through_asgi(self, storage, settings):
        app = create_app(settings)
        await app.state.store.initialise()
        client = _client(storage, httpx.ASGITransport(app=app))

        registered = await client.register("a@x.com", "secret1", "Alice", "user")
        assert registered.source == "remote"
        assert app.state.auth_service.verify(registered.token).email == "a@x.com"

        result = await client.authenticate("A@X.com", "secret1")
        assert result.source == "remote"

        with pytest.raises(InvalidCredentials):
            await client.authenticate("a@x.com", "wrong!!")
        await app.state.store.close()


class TestLocalMode:
    @pytest.mark.asyncio
    async def test_register_then_login_offline(self, storage):
        client = _client(storage)
        registered = await client.register("Guide@X.com", "secret1", "Gus", "tour-guide")
        assert registered.source == "local"
        assert registered.token is None
        assert client.current_user() is None

        result = await client.authenticate("guide@x.com", "secret1")
        assert result.user.dashboard == "/admin/tour-guide-dashboard"

        # plaintext, by design of the offline mode
        assert storage.get("registeredUsers")[0]["password"] == "secret1"

    @pytest.mark.asyncio
    async def test_local_validation_mirrors_backend(self, storage):
        client = _client(storage)
        with pytest.raises(ValidationError):
            await client.register("a@x.com", "123", "A", "user")
        with pytest.raises(ValidationError):
            await client.register("a@x.com", "secret1", "", "user")
        with pytest.raises(Conflict):
            await client.register("ADMIN@heritage.com", "secret1", "A", "admin")

    @pytest.mark.asyncio
    async def test_unknown_and_wrong_password_identical(self, storage):
        client = _client(storage)
        with pytest.raises(InvalidCredentials) as wrong:
            await client.authenticate("admin@heritage.com", "nope")
        with pytest.raises(InvalidCredentials) as unknown:
            await client.authenticate("ghost@heritage.com", "admin123")
        assert wrong.value.message == unknown.value.message

    def test_predefined_users_hide_passwords(self, storage):
        users = _client(storage).predefined_users()
        assert [u.email for u in users] == [
            "admin@heritage.com",
            "user@heritage.com",
            "creator@heritage.com",
        ]
        assert all("password" not in u.model_dump() for u in users)


class TestRememberedCredentials:
    def test_remember_match_and_clear(self, storage):
        client = _client(storage)
        assert client.remembered_credentials() is None

        client.remember_credentials("A@X.com", "secret1")
        assert client.remembered_credentials().email == "a@x.com"
        assert client.matches_remembered_credentials("a@x.com", "secret1")
        assert not client.matches_remembered_credentials("a@x.com", "secret2")

        client.clear_remembered_credentials()
        assert not client.matches_remembered_credentials("a@x.com", "secret1")


class TestLocalPasswordReset:
    @pytest.mark.asyncio
    async def test_seed_account_reset(self, storage):
        delivered = []
        client = _client(storage, delivered=delivered)

        record = await client.initiate_forgot_password("user@heritage.com")
        assert delivered == [record.code]
        assert storage.get("passwordOtps")[0]["otp"] == record.code

        await client.verify_otp_and_reset("user@heritage.com", record.code, "fresh-pass")
        assert (await client.authenticate("user@heritage.com", "fresh-pass")).user.role == "user"
        with pytest.raises(InvalidCredentials):
            await client.authenticate("user@heritage.com", "user123")

        with pytest.raises(InvalidOtp):
            await client.verify_otp_and_reset("user@heritage.com", record.code, "other-pass")
