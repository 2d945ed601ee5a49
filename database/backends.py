"""
Backend selection from ``Settings.storage_backend``.
"""

from __future__ import annotations

import logging
from typing import Tuple

from config.settings import Settings
from database.file_store import JsonFileCredentialStore
from database.kv_store import JsonKeyValueStore
from database.otp_store import KeyValueOtpStore, OtpStore, SqlOtpStore
from database.sql_store import SqlCredentialStore
from database.store import CredentialStore

logger = logging.getLogger(__name__)


def build_stores(settings: Settings) -> Tuple[CredentialStore, OtpStore]:
    """Pick the credential + OTP backends named by ``storage_backend``."""
    backend = settings.storage_backend.lower()
    if backend == "sqlite":
        store = SqlCredentialStore.from_url(settings.database_url)
        return store, SqlOtpStore(store.session_factory)
    if backend == "file":
        logger.warning(
            "File storage backend selected: concurrent registrations can "
            "overwrite each other (last writer wins)."
        )
        return (
            JsonFileCredentialStore(settings.users_file),
            KeyValueOtpStore(JsonKeyValueStore(settings.otp_file)),
        )
    raise ValueError(f"Unknown storage_backend '{settings.storage_backend}' (expected 'sqlite' or 'file')")
