import pytest

from jarvice_interview.db.engine import create_engine_and_sessionmaker, init_db
from jarvice_interview.db.repository import ChatRepository
from jarvice_interview.io.text_interface import TextInterface
from jarvice_interview.models.chat_service import ChatService
from jarvice_interview.models.llm_client import ChatClientBase, ChatReply


class FakeChatClient(ChatClientBase):
    def __init__(self) -> None:
        self.messages: list[str] = []

    async def send(self, message: str) -> ChatReply:
        self.messages.append(message)
        return ChatReply(content=f"echo: {message.strip()}", provider="gemini")


async def _sessionmaker(tmp_path):
    engine, sessionmaker = create_engine_and_sessionmaker(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    await init_db(engine)
    return engine, sessionmaker


class TestChatRepository:
    @pytest.mark.asyncio
    async def test_history_is_paginated_newest_first(self, tmp_path):
        engine, sessionmaker = await _sessionmaker(tmp_path)
        async with sessionmaker() as db, db.begin():
            repo = ChatRepository(db)
            for i in range(1, 4):
                await repo.add_exchange(1, f"m{i}", f"r{i}")
            await repo.add_exchange(2, "other", "user")

        async with sessionmaker() as db:
            repo = ChatRepository(db)
            first = await repo.history(1, page=1, limit=2)
            second = await repo.history(1, page=2, limit=2)

        assert [c["message"] for c in first.chats] == ["m3", "m2"]
        assert [c["message"] for c in second.chats] == ["m1"]
        assert first.pagination.total == 3
        assert first.pagination.pages == 2
        assert second.pagination.page == 2
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_clear_only_touches_one_user(self, tmp_path):
        engine, sessionmaker = await _sessionmaker(tmp_path)
        async with sessionmaker() as db, db.begin():
            repo = ChatRepository(db)
            await repo.add_exchange(1, "a", "b")
            await repo.add_exchange(1, "c", "d")
            await repo.add_exchange(2, "e", "f")

        async with sessionmaker() as db, db.begin():
            deleted = await ChatRepository(db).clear(1)

        async with sessionmaker() as db:
            repo = ChatRepository(db)
            mine = await repo.history(1)
            theirs = await repo.history(2)

        assert deleted == 2
        assert mine.chats == []
        assert mine.pagination.pages == 0
        assert theirs.pagination.total == 1
        await engine.dispose()


class TestChatService:
    @pytest.mark.asyncio
    async def test_send_stores_exchange(self, tmp_path):
        engine, sessionmaker = await _sessionmaker(tmp_path)
        service = ChatService(FakeChatClient(), sessionmaker)

        reply = await service.send(5, "  What is a good answer?  ")
        page = await service.history(5)

        assert reply.content == "echo: What is a good answer?"
        assert page.chats[0]["message"] == "What is a good answer?"
        assert page.chats[0]["response"] == "echo: What is a good answer?"
        assert await service.clear(5) == 1
        await engine.dispose()


class TestTextInterface:
    @pytest.mark.asyncio
    async def test_plain_client_reply(self, capsys):
        client = FakeChatClient()
        ui = TextInterface(client)

        shown = await ui.handle("hello")

        assert shown == "Jarvice: echo: hello"
        assert "Jarvice: echo: hello" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_history_commands(self, tmp_path):
        engine, sessionmaker = await _sessionmaker(tmp_path)
        ui = TextInterface(FakeChatClient(), chat_service=ChatService(FakeChatClient(), sessionmaker), user_id=3)

        assert await ui.handle("/history") == "No chat history yet."
        await ui.handle("first question")
        assert "first question" in await ui.handle("/history")
        assert await ui.handle("/clear") == "Chat history cleared successfully"
        assert await ui.handle("/history") == "No chat history yet."
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_run_exits_on_exit_word(self, monkeypatch, capsys):
        client = FakeChatClient()
        ui = TextInterface(client)
        lines = iter(["", "tell me", "exit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(lines))

        await ui.run()

        assert client.messages == ["tell me"]
        assert "Goodbye!" in capsys.readouterr().out
