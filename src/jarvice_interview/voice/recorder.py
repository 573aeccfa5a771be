"""
Session recorders.

A recorder receives the finished transcript and metrics of a live session
and stores them durably, either through the backend's HTTP API or directly
through the database repository.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jarvice_interview.config import get_settings
from jarvice_interview.db.repository import VoiceSessionRepository
from jarvice_interview.voice.errors import PersistenceError
from jarvice_interview.voice.schemas import InterviewMetrics, SaveResult, TranscriptEntry

logger = logging.getLogger(__name__)

SAVE_VOICE_SESSION_PATH = "/api/interview/save-voice-session"


def build_save_payload(
    transcript: Sequence[TranscriptEntry],
    metrics: InterviewMetrics,
    session_id: str,
) -> dict[str, Any]:
    """Build the JSON body expected by the save-voice-session endpoint."""
    return {
        "transcription": [entry.model_dump(mode="json") for entry in transcript],
        "metrics": metrics.model_dump(mode="json", by_alias=True),
        "sessionId": session_id,
    }


class SessionRecorder(ABC):
    """Abstract base class for voice session recorders."""

    @abstractmethod
    async def save(
        self,
        transcript: Sequence[TranscriptEntry],
        metrics: InterviewMetrics,
        session_id: str,
    ) -> SaveResult:
        """
        Store a finished session.

        Args:
            transcript: Committed entries in order.
            metrics: Metrics computed at session end.
            session_id: Opaque session identifier.

        Returns:
            Outcome of the save.

        Raises:
            PersistenceError: If the session could not be stored.
        """
        ...


class HttpSessionRecorder(SessionRecorder):
    """Posts finished sessions to the backend persistence API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the recorder.

        Args:
            base_url: API base URL (uses config if not provided).
            token: Bearer token (uses config if not provided).
            timeout: Request timeout in seconds.
            client: Pre-built client, mainly for tests.
        """
        settings = get_settings()
        self._base_url = base_url or settings.api_base_url
        self._token = token if token is not None else settings.api_token
        self._timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def save(
        self,
        transcript: Sequence[TranscriptEntry],
        metrics: InterviewMetrics,
        session_id: str,
    ) -> SaveResult:
        client = await self._get_client()
        payload = build_save_payload(transcript, metrics, session_id)
        try:
            response = await client.post(SAVE_VOICE_SESSION_PATH, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise PersistenceError(
                f"Save rejected with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise PersistenceError(f"Error saving interview session: {e}") from e

        logger.info(f"[VOICE][RECORDER] interview session saved: {session_id}")
        return SaveResult(success=True, session_id=session_id, detail=body if isinstance(body, dict) else {})


class DatabaseSessionRecorder(SessionRecorder):
    """Writes finished sessions straight to the database."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], user_id: int | None = None) -> None:
        self._sessionmaker = sessionmaker
        self._user_id = user_id

    async def save(
        self,
        transcript: Sequence[TranscriptEntry],
        metrics: InterviewMetrics,
        session_id: str,
    ) -> SaveResult:
        try:
            async with self._sessionmaker() as db, db.begin():
                repo = VoiceSessionRepository(db)
                model = await repo.save_session(
                    session_id=session_id,
                    transcript=transcript,
                    metrics=metrics,
                    user_id=self._user_id,
                )
                record_id = model.id
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Database error saving interview session: {e}") from e

        logger.info(f"[VOICE][RECORDER] interview session stored id={record_id} session={session_id}")
        return SaveResult(success=True, session_id=session_id, detail={"id": record_id})
