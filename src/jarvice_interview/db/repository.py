"""
Repositories for stored voice sessions and chat history.

Each repository wraps one AsyncSession; callers own the transaction.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, Sequence, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jarvice_interview.db.models import Base, ChatModel, TranscriptEntryModel, VoiceSessionModel

if TYPE_CHECKING:
    from jarvice_interview.voice.schemas import InterviewMetrics, TranscriptEntry

T = TypeVar("T", bound=Base)


class Pagination(BaseModel):
    """Pagination block returned with chat history."""

    page: int
    limit: int
    total: int
    pages: int


class ChatHistoryPage(BaseModel):
    """One page of a user's chat history, newest first."""

    chats: list[dict] = Field(default_factory=list)
    pagination: Pagination


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: int) -> T | None:
        """
        Get an entity by its ID.

        Args:
            entity_id: The entity's primary key.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(self._model_class, entity_id)

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def delete(self, entity: T) -> None:
        """
        Delete an entity.

        Args:
            entity: The entity to delete.
        """
        await self._session.delete(entity)
        await self._session.flush()


class VoiceSessionRepository(BaseRepository[VoiceSessionModel]):
    """Repository for finished voice interview sessions."""

    @property
    def _model_class(self) -> type[VoiceSessionModel]:
        """Get the model class."""
        return VoiceSessionModel

    async def save_session(
        self,
        session_id: str,
        transcript: Sequence["TranscriptEntry"],
        metrics: "InterviewMetrics",
        user_id: int | None = None,
    ) -> VoiceSessionModel:
        """
        Save a finished session with its transcript.

        Args:
            session_id: Opaque session identifier.
            transcript: Committed entries in order.
            metrics: Metrics computed at session end.
            user_id: Owner, if known.

        Returns:
            The created session model.
        """
        record = VoiceSessionModel(
            session_id=session_id,
            user_id=user_id,
            started_at=metrics.start_time,
            ended_at=metrics.end_time,
            total_duration=metrics.total_duration,
            questions_asked=metrics.questions_asked,
            answers_given=metrics.answers_given,
            metrics=metrics.model_dump(mode="json", by_alias=True),
        )

        for i, entry in enumerate(transcript):
            record.entries.append(
                TranscriptEntryModel(
                    sequence=i,
                    speaker=entry.speaker.value,
                    text=entry.text,
                    timestamp=entry.timestamp,
                )
            )

        return await self.create(record)

    async def get_by_session_id(self, session_id: str) -> VoiceSessionModel | None:
        """
        Get a session and its transcript by session id.

        Args:
            session_id: Opaque session identifier.

        Returns:
            The session if found, None otherwise.
        """
        stmt = (
            select(VoiceSessionModel)
            .options(selectinload(VoiceSessionModel.entries))
            .where(VoiceSessionModel.session_id == session_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(self, user_id: int | None = None, limit: int = 10) -> list[VoiceSessionModel]:
        stmt = select(VoiceSessionModel).order_by(VoiceSessionModel.created_at.desc()).limit(limit)
        if user_id is not None:
            stmt = stmt.where(VoiceSessionModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class ChatRepository(BaseRepository[ChatModel]):
    """Repository for text chat history."""

    @property
    def _model_class(self) -> type[ChatModel]:
        """Get the model class."""
        return ChatModel

    async def add_exchange(self, user_id: int, message: str, response: str) -> ChatModel:
        """
        Store one message/response pair.

        Args:
            user_id: Owner of the exchange.
            message: User message.
            response: Assistant reply.

        Returns:
            The created chat model.
        """
        return await self.create(ChatModel(user_id=user_id, message=message, response=response))

    async def history(self, user_id: int, page: int = 1, limit: int = 20) -> ChatHistoryPage:
        """
        Get a page of a user's chat history, newest first.

        Args:
            user_id: Owner of the history.
            page: 1-based page number.
            limit: Page size.

        Returns:
            The requested page and pagination info.
        """
        page = max(page, 1)
        limit = max(limit, 1)
        stmt = (
            select(ChatModel)
            .where(ChatModel.user_id == user_id)
            .order_by(ChatModel.timestamp.desc(), ChatModel.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self._session.execute(stmt)
        rows = list(result.scalars().all())

        total_stmt = select(func.count()).select_from(ChatModel).where(ChatModel.user_id == user_id)
        total = int((await self._session.execute(total_stmt)).scalar_one())

        return ChatHistoryPage(
            chats=[
                {"id": r.id, "message": r.message, "response": r.response, "timestamp": r.timestamp}
                for r in rows
            ],
            pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        )

    async def clear(self, user_id: int) -> int:
        """
        Delete all chat history for a user.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(ChatModel).where(ChatModel.user_id == user_id)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return int(result.rowcount or 0)
