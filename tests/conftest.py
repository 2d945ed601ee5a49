"""
Shared fixtures: both credential backends, a token issuer, and services
wired the way ``main.create_app`` wires them.
"""

import uuid

import pytest
import pytest_asyncio

from auth.password import hash_password
from auth.tokens import TokenIssuer
from config.settings import Settings
from core.auth_service import AuthService
from database.file_store import JsonFileCredentialStore
from database.sql_store import SqlCredentialStore
from utils.schemas import UserRecord

TEST_SECRET = "test-secret-0123456789-abcdefghijklmnop"
FAST_ROUNDS = 4


def make_user(email: str = "a@x.com", password: str = "secret1", role: str = "user") -> UserRecord:
    return UserRecord(
        id=str(uuid.uuid4()),
        email=email,
        password_hash=hash_password(password, rounds=FAST_ROUNDS),
        name="Alice",
        role=role,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'db' / 'auth.db'}",
        users_file=str(tmp_path / "db" / "users.json"),
        otp_file=str(tmp_path / "db" / "otps.json"),
        client_storage_file=str(tmp_path / "local_storage.json"),
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=FAST_ROUNDS,
        api_base="",
    )


@pytest_asyncio.fixture(params=["sqlite", "file"])
async def store(request, settings):
    if request.param == "sqlite":
        backend = SqlCredentialStore.from_url(settings.database_url)
    else:
        backend = JsonFileCredentialStore(settings.users_file)
    await backend.initialise()
    yield backend
    await backend.close()


@pytest.fixture
def tokens():
    return TokenIssuer(TEST_SECRET, 3600)


@pytest.fixture
def auth_service(store, tokens):
    return AuthService(store, tokens, bcrypt_rounds=FAST_ROUNDS)
