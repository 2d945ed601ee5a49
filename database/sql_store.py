"""
Relational credential backend (SQLAlchemy async, SQLite by default).

Every write runs in its own transaction; the ``UNIQUE`` constraint on the
lower-cased email column decides concurrent duplicate registrations.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from auth.exceptions import Conflict, NotFound, ServerError
from database.models import User
from database.session import create_session_factory, create_tables
from database.store import CredentialStore
from utils.schemas import UserRecord, UserSummary, normalize_email

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Log driver failures and surface them as a generic ``ServerError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure during %s", operation)
        raise ServerError() from exc


def _to_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name,
        role=row.role,
        created_at=as_utc(row.created_at),
    )


class SqlCredentialStore(CredentialStore):
    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._engine = engine
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlCredentialStore":
        engine, session_factory = create_session_factory(database_url)
        return cls(engine, session_factory)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def initialise(self) -> None:
        with storage_errors("initialise"):
            await create_tables(self._engine)

    async def close(self) -> None:
        await self._engine.dispose()

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        with storage_errors("find_by_email"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(User).where(func.lower(User.email) == normalize_email(email))
                )
                row = result.scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def insert(self, user: UserRecord) -> None:
        with storage_errors("insert"):
            async with self._session_factory() as session:
                session.add(
                    User(
                        id=user.id,
                        email=normalize_email(user.email),
                        password_hash=user.password_hash,
                        name=user.name,
                        role=user.role,
                        created_at=user.created_at,
                    )
                )
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise Conflict() from exc

    async def list(self) -> List[UserSummary]:
        with storage_errors("list"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(User.email, User.role, User.created_at).order_by(User.created_at)
                )
                rows = result.all()
        return [
            UserSummary(email=email, role=role, created_at=as_utc(created_at))
            for email, role, created_at in rows
        ]

    async def update_password(self, email: str, password_hash: str) -> None:
        with storage_errors("update_password"):
            async with self._session_factory() as session:
                result = await session.execute(
                    update(User)
                    .where(func.lower(User.email) == normalize_email(email))
                    .values(password_hash=password_hash)
                )
                await session.commit()
        if result.rowcount == 0:
            raise NotFound()

    async def delete_by_email(self, email: str) -> int:
        with storage_errors("delete_by_email"):
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(User).where(func.lower(User.email) == normalize_email(email))
                )
                await session.commit()
        return result.rowcount
