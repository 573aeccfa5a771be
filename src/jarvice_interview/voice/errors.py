"""Exceptions raised by the live voice interview pipeline."""

from __future__ import annotations


class VoiceInterviewError(Exception):
    """Base class for voice pipeline failures."""

    fatal: bool = True


class PermissionDenied(VoiceInterviewError):
    """Microphone access was refused or no input device is available."""


class TransportConnectError(VoiceInterviewError):
    """The streaming endpoint could not be reached or rejected the setup."""


class TransportSendError(VoiceInterviewError):
    """A single outbound frame could not be delivered."""

    fatal = False


class RemoteSessionError(VoiceInterviewError):
    """The remote model reported a failure on an open session."""


class PersistenceError(VoiceInterviewError):
    """The finished session could not be stored."""

    fatal = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(VoiceInterviewError):
    """An inbound audio payload was malformed."""

    fatal = False


class SessionStateError(VoiceInterviewError):
    """An operation was requested in a state that does not allow it."""
