"""Chat service: assistant replies plus per-user history storage."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jarvice_interview.db.repository import ChatHistoryPage, ChatRepository
from jarvice_interview.models.llm_client import ChatClientBase, ChatReply

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, client: ChatClientBase, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._client = client
        self._sessionmaker = sessionmaker

    async def send(self, user_id: int, message: str) -> ChatReply:
        """Get a reply and store the exchange in the user's history."""
        logger.info(f"Received message from user {user_id}")
        reply = await self._client.send(message)
        async with self._sessionmaker() as db, db.begin():
            await ChatRepository(db).add_exchange(user_id, message.strip(), reply.content)
        logger.debug(f"Message saved to database (provider={reply.provider})")
        return reply

    async def history(self, user_id: int, page: int = 1, limit: int = 20) -> ChatHistoryPage:
        async with self._sessionmaker() as db:
            return await ChatRepository(db).history(user_id, page=page, limit=limit)

    async def clear(self, user_id: int) -> int:
        async with self._sessionmaker() as db, db.begin():
            deleted = await ChatRepository(db).clear(user_id)
        logger.info(f"Cleared {deleted} chat messages for user {user_id}")
        return deleted
