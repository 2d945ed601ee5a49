"""
Flat-file credential backend: a JSON array of user records.

Each write is read-all → mutate in memory → write-all.  The final write is
atomic (temp file + rename), but the read-modify-write cycle is not: two
concurrent registrations can race and the last writer wins, dropping the
other record.  Only use this backend for single-process, low-traffic
deployments; ``storage_backend=sqlite`` is the default for that reason.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as SchemaError

from auth.exceptions import Conflict, NotFound, ServerError
from database.kv_store import read_json, write_json_atomic
from database.store import CredentialStore
from utils.schemas import UserRecord, UserSummary, normalize_email

logger = logging.getLogger(__name__)


class JsonFileCredentialStore(CredentialStore):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    # ── whole-collection I/O ────────────────────────────────────────────

    def _read_all(self) -> List[UserRecord]:
        raw = read_json(self.path, [])
        if not isinstance(raw, list):
            logger.error("Expected a JSON array in %s", self.path)
            raise ServerError()
        try:
            return [UserRecord.model_validate(item) for item in raw]
        except SchemaError as exc:
            logger.exception("Malformed user record in %s", self.path)
            raise ServerError() from exc

    def _write_all(self, users: List[UserRecord]) -> None:
        write_json_atomic(
            self.path,
            [u.model_dump(mode="json", by_alias=True) for u in users],
        )

    @staticmethod
    def _index_of(users: List[UserRecord], email: str) -> int:
        normalized = normalize_email(email)
        for idx, user in enumerate(users):
            if user.email.lower() == normalized:
                return idx
        return -1

    # ── CredentialStore ─────────────────────────────────────────────────

    async def initialise(self) -> None:
        if not self.path.exists():
            await asyncio.to_thread(self._write_all, [])
            logger.info("Created empty user file at %s", self.path)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        users = await asyncio.to_thread(self._read_all)
        idx = self._index_of(users, email)
        return users[idx] if idx != -1 else None

    async def insert(self, user: UserRecord) -> None:
        def _insert() -> None:
            users = self._read_all()
            if self._index_of(users, user.email) != -1:
                raise Conflict()
            users.append(user.model_copy(update={"email": normalize_email(user.email)}))
            self._write_all(users)

        await asyncio.to_thread(_insert)

    async def list(self) -> List[UserSummary]:
        users = await asyncio.to_thread(self._read_all)
        return [u.summary() for u in users]

    async def update_password(self, email: str, password_hash: str) -> None:
        def _update() -> None:
            users = self._read_all()
            idx = self._index_of(users, email)
            if idx == -1:
                raise NotFound()
            users[idx] = users[idx].model_copy(update={"password_hash": password_hash})
            self._write_all(users)

        await asyncio.to_thread(_update)

    async def delete_by_email(self, email: str) -> int:
        def _delete() -> int:
            users = self._read_all()
            normalized = normalize_email(email)
            kept = [u for u in users if u.email.lower() != normalized]
            removed = len(users) - len(kept)
            if removed:
                self._write_all(kept)
            return removed

        return await asyncio.to_thread(_delete)
