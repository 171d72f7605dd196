"""Authentication service for admin credentials."""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from fastapi.concurrency import run_in_threadpool
import logging

from app.models.user import User
from app.core.auth import DUMMY_PASSWORD_HASH, hash_password, verify_password
from app.core.errors import InvalidCredentials, StorageError, UnexpectedError

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    async def get_stored_credentials(username: str, db: AsyncSession) -> Optional[tuple[str, str]]:
        """Return ``(user_id, password_hash)`` for a username, or None."""
        try:
            result = await db.execute(
                select(User.user_id, User.password_hash).where(User.username == username)
            )
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to look up stored credentials") from e
        row = result.one_or_none()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def validate_credentials(username: str, password: str, db: AsyncSession) -> str:
        """
        Authenticate an admin with username and password.

        Args:
            username: Submitted username
            password: Plain text password
            db: Database session

        Returns:
            The user's id

        Raises:
            InvalidCredentials: Unknown username or wrong password
            UnexpectedError: Storage failure or unparseable stored hash
        """
        user_id = None
        expected_password_hash = DUMMY_PASSWORD_HASH

        stored = await AuthService.get_stored_credentials(username, db)
        if stored is not None:
            user_id, expected_password_hash = stored

        # Hash verification is CPU bound; keep it off the event loop
        await run_in_threadpool(verify_password, password, expected_password_hash)

        if user_id is None:
            raise InvalidCredentials("Unknown username")

        logger.debug(f"Credentials validated for user: {user_id}")
        return user_id

    @staticmethod
    async def change_password(user_id: str, new_password: str, db: AsyncSession) -> None:
        """
        Re-hash and store a new password for a user.

        Args:
            user_id: User's id
            new_password: Plain text password
            db: Database session

        Raises:
            StorageError: If the update could not be committed
        """
        password_hash = await run_in_threadpool(hash_password, new_password)

        try:
            await db.execute(
                update(User)
                .where(User.user_id == user_id)
                .values(password_hash=password_hash)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError("Failed to change user's password in db") from e

        logger.info(f"Password changed for user: {user_id}")

    @staticmethod
    async def get_username(user_id: str, db: AsyncSession) -> str:
        """
        Get the username for a user id.

        Raises:
            UnexpectedError: If the user does not exist or the query fails
        """
        try:
            result = await db.execute(select(User.username).where(User.user_id == user_id))
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to get username") from e
        username = result.scalar_one_or_none()
        if username is None:
            raise UnexpectedError(f"No user with id {user_id}")
        return username

    @staticmethod
    async def create_user(username: str, password: str, db: AsyncSession) -> User:
        """
        Create an admin account, or return the existing one with that username.

        Args:
            username: Unique username
            password: Plain text password
            db: Database session

        Returns:
            The User object
        """
        logger.info(f"Attempting to create user: {username}")

        result = await db.execute(select(User).where(User.username == username))
        existing_user = result.scalar_one_or_none()
        if existing_user:
            logger.info(f"User already exists: {username}")
            return existing_user

        try:
            user = User(
                username=username,
                password_hash=await run_in_threadpool(hash_password, password)
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except Exception as e:
            logger.error(f"Error creating user {username}: {str(e)}", exc_info=True)
            await db.rollback()
            raise

        logger.info(f"Successfully created user: {username} (ID: {user.user_id})")
        return user
