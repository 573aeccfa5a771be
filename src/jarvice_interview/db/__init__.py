"""
Database module for persistence.

Provides SQLAlchemy models and repository pattern for
voice session and chat history persistence.
"""

from jarvice_interview.db.engine import create_engine_and_sessionmaker, init_db
from jarvice_interview.db.models import (
    Base,
    ChatModel,
    TranscriptEntryModel,
    VoiceSessionModel,
)
from jarvice_interview.db.repository import (
    ChatHistoryPage,
    ChatRepository,
    VoiceSessionRepository,
)

__all__ = [
    "Base",
    "ChatModel",
    "TranscriptEntryModel",
    "VoiceSessionModel",
    "ChatHistoryPage",
    "ChatRepository",
    "VoiceSessionRepository",
    "create_engine_and_sessionmaker",
    "init_db",
]
