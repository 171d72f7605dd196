"""Error taxonomy shared by services and routes.

Services raise these instead of ``HTTPException`` so they stay usable outside
of a request (startup seeding, scripts). ``app.api.main`` maps each class to
a status code. Always raise with ``from`` so the causal chain reaches the log.
"""
from typing import Type, TypeVar

from fastapi import status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class NewsletterError(Exception):
    """Base class for every expected failure in the service."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ValidationError(NewsletterError):
    """Malformed input, rejected before any side effect."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(NewsletterError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(AuthError):
    """Unknown username or wrong password. Callers cannot tell which."""


class LoginRequired(AuthError):
    """No user id in the session."""

    status_code = status.HTTP_303_SEE_OTHER


class StorageError(NewsletterError):
    """Database unavailable or a write failed."""


class TransportError(NewsletterError):
    """The email gateway could not be reached or rejected the request."""


class EmailDeliveryError(TransportError):
    pass


class UnexpectedError(NewsletterError):
    """Internal invariant violated (e.g. a stored hash we cannot parse)."""


class IdempotencyConflict(NewsletterError):
    """The key is taken but no outcome has been stored for it."""

    status_code = status.HTTP_409_CONFLICT


def error_chain(exc: BaseException) -> str:
    """Render an exception and its causes as ``outer <- inner <- ...``."""
    parts = []
    current: BaseException | None = exc
    while current is not None:
        parts.append(f"{type(current).__name__}: {current}")
        current = current.__cause__ or current.__context__
    return " <- ".join(parts)


def parse_model(model: Type[ModelT], **data) -> ModelT:
    """
    Validate form input into ``model``.

    Raises:
        ValidationError: Carrying pydantic's field messages, e.g.
            ``name: String should have at most 256 characters``
    """
    try:
        return model(**data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(details) from e
