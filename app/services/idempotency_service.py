"""Idempotency layer for newsletter publishing.

Policy: the request inserts its (user_id, key) row inside the request
transaction before dispatching, then writes the response into that row and
commits. A crash before the commit leaves no row behind, so a retry with the
same key dispatches again. A committed row always carries the final response,
so at most one dispatch per key ever succeeds.

Concurrent requests with the same key are serialised by the primary key: the
second INSERT blocks on the first one's uncommitted row and, once that commits,
turns into a no-op; the loser then reads the winner's saved response.
"""
from dataclasses import dataclass
from typing import Optional, Union
import logging

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from app.core.errors import IdempotencyConflict, StorageError, parse_model
from app.core.flash import FlashMessage
from app.models import IdempotencyRecord

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 50

# Headers that belong to the transport or to per-request cookies, not to the outcome
_UNSAVED_HEADERS = {"content-length", "set-cookie"}


class IdempotencyKey(BaseModel):
    """Client-supplied opaque key, 1 to 50 characters."""
    model_config = ConfigDict(frozen=True)

    value: str = Field(min_length=1, max_length=MAX_KEY_LENGTH)

    @field_validator("value")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("The idempotency key cannot be blank")
        return v

    @classmethod
    def parse(cls, raw: str) -> "IdempotencyKey":
        return parse_model(cls, value=raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StartProcessing:
    """The caller owns the key and must dispatch, then save its response."""


@dataclass(frozen=True)
class ReturnSavedResponse:
    """The key was already processed; replay this response and its notice."""
    response: Response
    flash: Optional[FlashMessage] = None


NextAction = Union[StartProcessing, ReturnSavedResponse]


def _insert_ignoring_conflicts(dialect_name: str):
    if dialect_name == "postgresql":
        return postgresql.insert(IdempotencyRecord).on_conflict_do_nothing(
            index_elements=["user_id", "idempotency_key"]
        )
    if dialect_name == "sqlite":
        return sqlite.insert(IdempotencyRecord).on_conflict_do_nothing(
            index_elements=["user_id", "idempotency_key"]
        )
    raise StorageError(f"Idempotency is not supported on the {dialect_name} dialect")


class IdempotencyService:
    """Service deduplicating publish requests per (user, key)."""

    @staticmethod
    async def try_processing(
        db: AsyncSession,
        idempotency_key: IdempotencyKey,
        user_id: str
    ) -> NextAction:
        """
        Reserve the key inside the current transaction, or fetch the saved outcome.

        Returns:
            StartProcessing if this request inserted the row (transaction left open),
            ReturnSavedResponse if another request already completed

        Raises:
            IdempotencyConflict: The row exists but carries no response
            StorageError: On database failure
        """
        try:
            # Core execution on the session's connection, so rowcount is reliable
            connection = await db.connection()
            statement = _insert_ignoring_conflicts(connection.dialect.name).values(
                user_id=user_id,
                idempotency_key=str(idempotency_key),
            )
            result = await connection.execute(statement)
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError("Failed to insert idempotency record") from e

        if result.rowcount > 0:
            logger.debug(f"Reserved idempotency key for user {user_id}")
            return StartProcessing()

        saved = await IdempotencyService.get_saved_response(db, idempotency_key, user_id)
        await db.rollback()
        if saved is None:
            raise IdempotencyConflict("This request is already being processed")

        logger.info(f"Replaying saved response for user {user_id}")
        return saved

    @staticmethod
    async def get_saved_response(
        db: AsyncSession,
        idempotency_key: IdempotencyKey,
        user_id: str
    ) -> Optional[ReturnSavedResponse]:
        """Rebuild the stored response and notice, or None if nothing was stored yet."""
        try:
            result = await db.execute(
                select(IdempotencyRecord).where(
                    IdempotencyRecord.user_id == user_id,
                    IdempotencyRecord.idempotency_key == str(idempotency_key)
                )
            )
        except SQLAlchemyError as e:
            raise StorageError("Failed to read saved response") from e

        record = result.scalar_one_or_none()
        if record is None or record.response_status_code is None:
            return None

        response = Response(content=record.response_body or b"", status_code=record.response_status_code)
        for name, value in record.response_headers or []:
            if name.lower() in _UNSAVED_HEADERS:
                continue
            response.headers.append(name, value)

        flash = None
        if record.response_flash_message is not None:
            flash = FlashMessage(level=record.response_flash_level or "info", content=record.response_flash_message)
        return ReturnSavedResponse(response, flash)

    @staticmethod
    async def save_response(
        db: AsyncSession,
        idempotency_key: IdempotencyKey,
        user_id: str,
        response: Response,
        flash: Optional[FlashMessage] = None
    ) -> Response:
        """
        Store ``response`` as the outcome for the key and commit the transaction.

        Cookies are never stored, so the notice shown with the response is
        kept in its own columns and re-attached on every replay.

        Returns:
            The same response, for chaining
        """
        headers = [
            [name, value]
            for name, value in response.headers.items()
            if name.lower() not in _UNSAVED_HEADERS
        ]

        try:
            result = await db.execute(
                select(IdempotencyRecord).where(
                    IdempotencyRecord.user_id == user_id,
                    IdempotencyRecord.idempotency_key == str(idempotency_key)
                )
            )
            record = result.scalar_one()
            record.response_status_code = response.status_code
            record.response_headers = headers
            record.response_body = bytes(response.body or b"")
            if flash is not None:
                record.response_flash_level = flash.level
                record.response_flash_message = flash.content
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise StorageError("Failed to save idempotent response") from e

        return response
