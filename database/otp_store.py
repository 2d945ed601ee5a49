"""
Persistence for password-reset OTP records.

At most one live record per (normalised) email: ``put`` replaces whatever
was stored before.  ``consume`` removes a record only when the presented
code still matches it, and reports whether it did; a code can therefore be
claimed by exactly one caller.
"""

from __future__ import annotations

import asyncio
import hmac
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.kv_store import JsonKeyValueStore
from database.models import PasswordOtp
from database.sql_store import as_utc, storage_errors
from utils.schemas import OtpRecord, normalize_email

OTP_KEY = "passwordOtps"


class OtpStore(ABC):
    @abstractmethod
    async def get(self, email: str) -> Optional[OtpRecord]:
        ...

    @abstractmethod
    async def put(self, record: OtpRecord) -> None:
        """Store ``record``, evicting any prior record for the same email."""
        ...

    @abstractmethod
    async def delete(self, email: str) -> None:
        ...

    @abstractmethod
    async def consume(self, email: str, code: str) -> bool:
        """
        Atomically delete the record for ``email`` if its code is ``code``.

        Returns True for the single caller that removed it, False otherwise.
        """
        ...


class SqlOtpStore(OtpStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, email: str) -> Optional[OtpRecord]:
        with storage_errors("otp_get"):
            async with self._session_factory() as session:
                row = await session.get(PasswordOtp, normalize_email(email))
        if row is None:
            return None
        return OtpRecord(email=row.email, code=row.code, expires_at=as_utc(row.expires_at))

    async def put(self, record: OtpRecord) -> None:
        with storage_errors("otp_put"):
            async with self._session_factory() as session:
                await session.merge(
                    PasswordOtp(
                        email=normalize_email(record.email),
                        code=record.code,
                        expires_at=record.expires_at,
                    )
                )
                await session.commit()

    async def delete(self, email: str) -> None:
        with storage_errors("otp_delete"):
            async with self._session_factory() as session:
                await session.execute(
                    delete(PasswordOtp).where(PasswordOtp.email == normalize_email(email))
                )
                await session.commit()

    async def consume(self, email: str, code: str) -> bool:
        with storage_errors("otp_consume"):
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(PasswordOtp).where(
                        PasswordOtp.email == normalize_email(email),
                        PasswordOtp.code == code,
                    )
                )
                await session.commit()
        return result.rowcount == 1


class KeyValueOtpStore(OtpStore):
    """
    OTP records kept as a JSON array under one key of a ``JsonKeyValueStore``.

    Every read-modify-write runs under one lock, so callers sharing this
    instance never interleave.  Separate processes writing the same file are
    not coordinated.
    """

    def __init__(self, kv: JsonKeyValueStore, key: str = OTP_KEY):
        self._kv = kv
        self._key = key
        self._lock = threading.Lock()

    def _load(self) -> List[OtpRecord]:
        return [OtpRecord.model_validate(item) for item in self._kv.get(self._key, [])]

    def _save(self, records: List[OtpRecord]) -> None:
        self._kv.set(self._key, [r.model_dump(mode="json", by_alias=True) for r in records])

    async def get(self, email: str) -> Optional[OtpRecord]:
        normalized = normalize_email(email)
        records = await asyncio.to_thread(self._load)
        return next((r for r in records if r.email == normalized), None)

    async def put(self, record: OtpRecord) -> None:
        normalized = normalize_email(record.email)

        def _put() -> None:
            with self._lock:
                records = [r for r in self._load() if r.email != normalized]
                records.append(record.model_copy(update={"email": normalized}))
                self._save(records)

        await asyncio.to_thread(_put)

    async def delete(self, email: str) -> None:
        normalized = normalize_email(email)

        def _delete() -> None:
            with self._lock:
                records = self._load()
                kept = [r for r in records if r.email != normalized]
                if len(kept) != len(records):
                    self._save(kept)

        await asyncio.to_thread(_delete)

    async def consume(self, email: str, code: str) -> bool:
        normalized = normalize_email(email)

        def _consume() -> bool:
            with self._lock:
                records = self._load()
                kept = [
                    r
                    for r in records
                    if not (r.email == normalized and hmac.compare_digest(r.code.encode(), code.encode()))
                ]
                if len(kept) == len(records):
                    return False
                self._save(kept)
                return True

        return await asyncio.to_thread(_consume)
