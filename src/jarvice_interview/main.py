"""
Main entry point for the Jarvice interview application.
"""

import argparse
import asyncio
import logging
import sys

from jarvice_interview.config import get_settings


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jarvice-interview")
    parser.add_argument(
        "--mode",
        choices=["chat", "voice"],
        default="voice",
        help="Run the text chat assistant or a live voice interview",
    )
    parser.add_argument(
        "--role-type",
        default=None,
        help="Position the interviewer should interview for (default: software engineering)",
    )
    parser.add_argument(
        "--store",
        choices=["api", "db"],
        default="api",
        help="Store finished voice sessions through the backend API or directly in the database",
    )
    parser.add_argument(
        "--user-id",
        type=int,
        default=1,
        help="Owner of stored chat history and voice sessions",
    )
    return parser


async def run(argv: list[str] | None = None) -> None:
    """
    Run the selected interface.

    Initializes the configured components and hands control to the
    text or voice interface.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logger = logging.getLogger(__name__)

    logger.info("Initializing Jarvice interview...")
    engine = None

    if args.mode == "chat":
        from jarvice_interview.io.text_interface import TextInterface
        from jarvice_interview.models.llm_client import ChatClient

        client = ChatClient()
        chat_service = None
        if args.store == "db":
            from jarvice_interview.db.engine import create_engine_and_sessionmaker, init_db
            from jarvice_interview.models.chat_service import ChatService

            engine, sessionmaker = create_engine_and_sessionmaker(settings.database_url)
            await init_db(engine)
            chat_service = ChatService(client, sessionmaker)
        interface = TextInterface(client, chat_service=chat_service, user_id=args.user_id)
        try:
            await interface.run()
        finally:
            await client.close()
            if engine is not None:
                await engine.dispose()
        return

    # Lazy import so chat mode doesn't require audio devices.
    from jarvice_interview.io.voice_interface import VoiceInterface
    from jarvice_interview.voice.recorder import DatabaseSessionRecorder, HttpSessionRecorder

    if args.store == "db":
        from jarvice_interview.db.engine import create_engine_and_sessionmaker, init_db

        engine, sessionmaker = create_engine_and_sessionmaker(settings.database_url)
        await init_db(engine)
        recorder = DatabaseSessionRecorder(sessionmaker, user_id=args.user_id)
    else:
        recorder = HttpSessionRecorder()

    interface = VoiceInterface(role_type=args.role_type, recorder=recorder)

    logger.info("Starting voice interview session...")
    try:
        await interface.run()
    finally:
        if isinstance(recorder, HttpSessionRecorder):
            await recorder.close()
        if engine is not None:
            await engine.dispose()


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nInterview session terminated by user.")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
