"""
Identity store and credential verifier used by the core.

The core only sees the two protocols below. ``SqlAlchemyIdentityStore`` opens
a short-lived session per call so it can be shared by the long-lived registry
and service objects.
"""
import asyncio
from typing import List, Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.auth.models import User
from app.auth.security import hash_password, verify_password
from app.core.enums import FailureCode, UserRole
from app.core.exceptions import AccountFailure
from app.core.schemas import UserRecord


class IdentityStore(Protocol):
    async def find_by_id(self, user_id: UUID) -> Optional[UserRecord]: ...

    async def find_by_username(self, username: str) -> Optional[UserRecord]: ...

    async def save(self, user: UserRecord) -> UserRecord: ...

    async def delete(self, user_id: UUID) -> bool: ...

    async def list_users(self, role: Optional[UserRole] = None) -> List[UserRecord]: ...


class CredentialVerifier(Protocol):
    async def verify(self, plaintext: str, password_hash: str) -> bool: ...

    async def hash(self, plaintext: str) -> str: ...


class SqlAlchemyIdentityStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_id(self, user_id: UUID) -> Optional[UserRecord]:
        async with self._session_factory() as db:
            user = await db.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        async with self._session_factory() as db:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    async def save(self, user: UserRecord) -> UserRecord:
        async with self._session_factory() as db:
            obj = await db.get(User, user.id)
            if obj is None:
                obj = User(id=user.id)
                if user.created_at is not None:
                    obj.created_at = user.created_at
                db.add(obj)
            obj.username = user.username
            obj.password_hash = user.password_hash
            obj.role = user.role.value
            obj.last_login_at = user.last_login_at
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise AccountFailure(
                    FailureCode.USERNAME_TAKEN, f"Username '{user.username}' is already in use"
                ) from e
            await db.refresh(obj)
            return UserRecord.model_validate(obj)

    async def delete(self, user_id: UUID) -> bool:
        async with self._session_factory() as db:
            obj = await db.get(User, user_id)
            if obj is None:
                return False
            await db.delete(obj)
            await db.commit()
            return True

    async def list_users(self, role: Optional[UserRole] = None) -> List[UserRecord]:
        async with self._session_factory() as db:
            stmt = select(User)
            if role is not None:
                stmt = stmt.where(User.role == role.value)
            stmt = stmt.order_by(User.username)
            result = await db.execute(stmt)
            return [UserRecord.model_validate(u) for u in result.scalars().all()]


class BcryptCredentialVerifier:
    """bcrypt is CPU bound, so both calls run off the event loop."""

    async def verify(self, plaintext: str, password_hash: str) -> bool:
        return await asyncio.to_thread(verify_password, plaintext, password_hash)

    async def hash(self, plaintext: str) -> str:
        return await asyncio.to_thread(hash_password, plaintext)
