"""
CredentialStore — abstract interface for user persistence.

Two interchangeable backends implement it:

* ``SqlCredentialStore``  — one row per user, writes run in a transaction
  (default; safe under concurrent writers).
* ``JsonFileCredentialStore`` — whole-collection rewrite of a JSON array
  (read-all, mutate, write-all).  Not safe under concurrent writers.

All lookups are keyed by the normalised (lower-cased) email.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from utils.schemas import UserRecord, UserSummary


class CredentialStore(ABC):
    """Abstract base for user-record storage."""

    async def initialise(self) -> None:
        """Prepare the backing storage (create tables / directories)."""

    async def close(self) -> None:
        """Release any held resources."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Case-insensitive lookup; ``None`` when absent."""
        ...

    @abstractmethod
    async def insert(self, user: UserRecord) -> None:
        """
        Persist a new user.

        Raises ``Conflict`` if the email already exists (case-insensitive).
        """
        ...

    @abstractmethod
    async def list(self) -> List[UserSummary]:
        """Every user's ``{email, role, createdAt}``; never the hash."""
        ...

    @abstractmethod
    async def update_password(self, email: str, password_hash: str) -> None:
        """Replace the stored hash.  Raises ``NotFound`` for unknown emails."""
        ...

    @abstractmethod
    async def delete_by_email(self, email: str) -> int:
        """Administrative removal.  Returns the number of records deleted."""
        ...
