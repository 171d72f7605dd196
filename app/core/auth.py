"""Authentication utilities for password hashing and admin-route guarding."""
from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Depends

from app.core.errors import InvalidCredentials, LoginRequired, UnexpectedError
from app.core.session import TypedSession, get_session

# Password hashing context: argon2id, m=15000 KiB, t=2, p=1
password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=15000,
    parallelism=1,
    type=Type.ID
)

# Verified against when the username is unknown so that both failure paths
# spend the same time hashing.
DUMMY_PASSWORD_HASH = (
    "$argon2id$v=19$m=15000,t=2,p=1$"
    "gZiV/M1gPc22ElAH/Jh1Hw$"
    "CWOrkoo7oJBQ/iyh7uJ0LO2aLEfrHwTWllSAxT0zRno"
)


def hash_password(password: str) -> str:
    """
    Hash a plain text password using argon2id.

    The salt is freshly generated and embedded in the returned PHC string.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return password_hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> None:
    """
    Verify a plain text password against a hashed password.

    CPU bound; call it through ``run_in_threadpool`` from async code.

    Args:
        plain_password: Plain text password to verify
        hashed_password: PHC-formatted argon2 hash to compare against

    Raises:
        InvalidCredentials: If the password does not match
        UnexpectedError: If the stored hash cannot be parsed
    """
    try:
        password_hasher.verify(hashed_password, plain_password)
    except VerifyMismatchError as e:
        raise InvalidCredentials("Invalid password") from e
    except InvalidHashError as e:
        raise UnexpectedError("Failed to parse hash in PHC string format") from e
    except VerificationError as e:
        raise InvalidCredentials("Password verification failed") from e


async def require_login(session: TypedSession = Depends(get_session)) -> str:
    """
    FastAPI dependency guarding every /admin route.

    Returns:
        The logged-in user's id

    Raises:
        LoginRequired: If the session carries no user id (redirects to /login)
    """
    user_id = session.get_user_id()
    if user_id is None:
        raise LoginRequired("Login required")
    return user_id
