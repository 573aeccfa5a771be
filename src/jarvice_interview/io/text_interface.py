"""
Text-based chat interface.

Provides a command-line REPL for the interview-preparation assistant.
"""

from abc import ABC, abstractmethod

from jarvice_interview.models.chat_service import ChatService
from jarvice_interview.models.llm_client import ChatClientBase

EXIT_WORDS = ("quit", "exit", "end")


class InterviewInterface(ABC):
    """Abstract base class for terminal interfaces."""

    @abstractmethod
    async def run(self) -> None:
        """Run the interface."""
        ...

    @abstractmethod
    async def send_message(self, message: str) -> None:
        """
        Send a message to the user.

        Args:
            message: Message to display.
        """
        ...

    @abstractmethod
    async def receive_input(self) -> str:
        """
        Receive input from the user.

        Returns:
            User's input string.
        """
        ...


class TextInterface(InterviewInterface):
    """
    Command-line chat interface.

    Messages go to the chat client; when a ChatService is supplied, the
    exchange is also stored and ``/history`` and ``/clear`` are available.
    """

    def __init__(
        self,
        client: ChatClientBase,
        *,
        chat_service: ChatService | None = None,
        user_id: int = 1,
    ) -> None:
        """
        Initialize the text interface.

        Args:
            client: Chat client used when no service is configured.
            chat_service: Optional service that persists history.
            user_id: Owner of the stored history.
        """
        self._client = client
        self._chat_service = chat_service
        self._user_id = user_id

    async def run(self) -> None:
        """Run the interactive chat session."""
        print("\n" + "=" * 60)
        print("Jarvice AI - Interview Preparation Chat")
        print("=" * 60 + "\n")
        print("Type 'exit' to quit.")
        if self._chat_service is not None:
            print("Commands: /history, /clear\n")

        while True:
            user_input = (await self.receive_input()).strip()
            if user_input.lower() in EXIT_WORDS:
                print("\nGoodbye!")
                break
            if not user_input:
                continue
            await self.handle(user_input)

    async def handle(self, user_input: str) -> str:
        """Process one line of input and return what was displayed."""
        if self._chat_service is not None and user_input == "/history":
            page = await self._chat_service.history(self._user_id)
            lines = [f"- {c['message']} -> {c['response'][:80]}" for c in page.chats]
            text = "\n".join(lines) or "No chat history yet."
        elif self._chat_service is not None and user_input == "/clear":
            await self._chat_service.clear(self._user_id)
            text = "Chat history cleared successfully"
        elif self._chat_service is not None:
            reply = await self._chat_service.send(self._user_id, user_input)
            text = f"Jarvice: {reply.content}"
        else:
            reply = await self._client.send(user_input)
            text = f"Jarvice: {reply.content}"

        await self.send_message(text)
        return text

    async def send_message(self, message: str) -> None:
        """
        Display a message to the terminal.

        Args:
            message: Message to display.
        """
        print(f"\n{message}\n")

    async def receive_input(self) -> str:
        """
        Get input from the terminal.

        Returns:
            User's input string.
        """
        return await self._get_input("You: ")

    async def _get_input(self, prompt: str) -> str:
        try:
            return input(prompt)
        except EOFError:
            return "exit"
