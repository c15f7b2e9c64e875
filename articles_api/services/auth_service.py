"""
Auth service — registration and login.

Both operations answer with the same shape: a signed access token plus
the public user projection.  Login failures use one message whether the
email is unknown or the password is wrong, so the endpoint cannot be used
to probe which addresses are registered.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from articles_api.exceptions import ConflictError, UnauthorizedError
from articles_api.models import User
from articles_api.schemas import LoginRequest, RegisterRequest
from articles_api.security import create_access_token, hash_password, verify_password
from articles_api.services import user_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _auth_response(user: User) -> dict:
    return {
        "accessToken": create_access_token(user.id, user.email),
        "user": user_service.user_to_public_dict(user),
    }


async def register(db: AsyncSession, data: RegisterRequest) -> dict:
    """Create a user and return a token for it; ConflictError if the email is taken."""
    if await user_service.get_user_by_email(db, data.email) is not None:
        raise ConflictError("Email already in use")

    # bcrypt is CPU bound; keep it off the event loop.
    password_hash = await run_in_threadpool(hash_password, data.password)
    user = await user_service.create_user(db, data.email, password_hash)

    logger.info("Registered user %s", user.id)
    return _auth_response(user)


async def login(db: AsyncSession, data: LoginRequest) -> dict:
    user = await user_service.get_user_by_email(db, data.email)
    if user is None:
        raise UnauthorizedError(INVALID_CREDENTIALS)

    if not await run_in_threadpool(verify_password, data.password, user.password_hash):
        logger.info("Failed login for user %s", user.id)
        raise UnauthorizedError(INVALID_CREDENTIALS)

    return _auth_response(user)
