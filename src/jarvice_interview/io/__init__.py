"""
IO module for terminal interfaces.

Provides the text chat and live voice interview interfaces.
"""

from jarvice_interview.io.text_interface import TextInterface
from jarvice_interview.io.voice_interface import VoiceInterface, build_live_session

__all__ = ["TextInterface", "VoiceInterface", "build_live_session"]
