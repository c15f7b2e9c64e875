"""
User service — directory lookups and creation for the User aggregate.

Users are fetched without caching: lookups happen on login and once per
authenticated request, and a stale user record would let a deleted
account keep acting on a valid token.
"""
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from articles_api.exceptions import ConflictError
from articles_api.models import User, isoformat_utc


def user_to_public_dict(user: User) -> dict:
    """Public-safe projection; the password hash is never included."""
    return {
        "id": str(user.id),
        "email": user.email,
        "createdAt": isoformat_utc(user.created_at),
    }


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await db.get(User, user_id)


async def create_user(db: AsyncSession, email: str, password_hash: str) -> User:
    """
    Insert a new user and flush it so the generated id is available.

    Email uniqueness is enforced by the database; a violation raised by a
    concurrent registration is reported as ConflictError.
    """
    user = User(email=email, password_hash=password_hash)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("Email already in use") from exc
    return user
