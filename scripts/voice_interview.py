#!/usr/bin/env python

import argparse
import asyncio
import logging
import os
import sys

from jarvice_interview.config import Settings, get_settings
from jarvice_interview.io.voice_interface import VoiceInterface
from jarvice_interview.voice.recorder import HttpSessionRecorder


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run a Jarvice live voice interview")
    p.add_argument(
        "--role-type",
        default=os.getenv("JARVICE_ROLE_TYPE", None),
        help="Position being interviewed for (default: JARVICE_ROLE_TYPE or 'software engineering')",
    )
    p.add_argument(
        "--model",
        default=os.getenv("JARVICE_LIVE_MODEL", None),
        help="Streaming audio model (default: JARVICE_LIVE_MODEL or settings.live_model)",
    )
    p.add_argument(
        "--voice",
        default=os.getenv("JARVICE_LIVE_VOICE", None),
        help="Prebuilt interviewer voice (default: JARVICE_LIVE_VOICE or settings.live_voice)",
    )
    p.add_argument(
        "--api-base-url",
        default=os.getenv("JARVICE_API_BASE_URL", None),
        help="Backend that stores finished sessions (default: JARVICE_API_BASE_URL or settings.api_base_url)",
    )
    p.add_argument(
        "--connect-timeout",
        type=float,
        default=float(os.getenv("JARVICE_CONNECT_TIMEOUT_S", "15") or "15"),
        help="Connect handshake bound in seconds (default: JARVICE_CONNECT_TIMEOUT_S or 15)",
    )
    p.add_argument(
        "--save-delay",
        type=float,
        default=float(os.getenv("JARVICE_SAVE_DELAY_S", "1.0") or "1.0"),
        help="Delay before saving a finished session (default: JARVICE_SAVE_DELAY_S or 1.0)",
    )
    p.add_argument(
        "--frame-size",
        type=int,
        default=os.getenv("JARVICE_FRAME_SIZE", None),
        help="Microphone samples per frame (default: JARVICE_FRAME_SIZE or settings.frame_size)",
    )
    return p


def settings_from_args(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    base = base or get_settings()
    overrides = {
        "connect_timeout_s": args.connect_timeout,
        "save_delay_s": args.save_delay,
    }
    if args.frame_size:
        overrides["frame_size"] = args.frame_size
    if args.model:
        overrides["live_model"] = args.model
    if args.voice:
        overrides["live_voice"] = args.voice
    if args.api_base_url:
        overrides["api_base_url"] = args.api_base_url
    return base.model_copy(update=overrides)


async def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    recorder = HttpSessionRecorder(base_url=settings.api_base_url, token=settings.api_token)
    interface = VoiceInterface(role_type=args.role_type, recorder=recorder, settings=settings)

    try:
        await interface.run()
    finally:
        await recorder.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        raise SystemExit(0)
