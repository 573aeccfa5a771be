"""Turn-by-turn transcript assembly from partial transcription fragments."""

from __future__ import annotations

import logging

from jarvice_interview.voice.schemas import Speaker, TranscriptEntry

logger = logging.getLogger(__name__)


class TranscriptAssembler:
    """
    Accumulates partial text per speaker and commits finished utterances.

    Pending text lives in one buffer per speaker and is only exposed once a
    turn boundary converts it into a TranscriptEntry. The transcript itself
    is append-only.
    """

    def __init__(self) -> None:
        self._entries: list[TranscriptEntry] = []
        self._pending_user: str = ""
        self._pending_interviewer: str = ""
        self._questions_asked: int = 0
        self._answers_given: int = 0

    @property
    def entries(self) -> tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    @property
    def questions_asked(self) -> int:
        return self._questions_asked

    @property
    def answers_given(self) -> int:
        return self._answers_given

    @property
    def has_pending(self) -> bool:
        return bool(self._pending_user or self._pending_interviewer)

    def append_input(self, fragment: str) -> None:
        self._pending_user += fragment

    def append_output(self, fragment: str) -> None:
        self._pending_interviewer += fragment

    def complete_turn(self) -> list[TranscriptEntry]:
        """
        Close the current turn.

        Commits the user buffer first, then the interviewer buffer, skipping
        either if it is empty after trimming. Both buffers are cleared.

        Returns:
            The entries committed by this turn (zero, one or two).
        """
        user_text = self._pending_user.strip()
        interviewer_text = self._pending_interviewer.strip()
        self._pending_user = ""
        self._pending_interviewer = ""

        committed: list[TranscriptEntry] = []
        if user_text:
            committed.append(self.commit(Speaker.USER, user_text))
        if interviewer_text:
            committed.append(self.commit(Speaker.INTERVIEWER, interviewer_text))
        return committed

    def commit(self, speaker: Speaker, text: str) -> TranscriptEntry:
        entry = TranscriptEntry(speaker=speaker, text=text)
        self._entries.append(entry)
        if speaker is Speaker.USER:
            self._answers_given += 1
        else:
            self._questions_asked += 1
        logger.info(f"[VOICE][TRANSCRIPT] [{speaker.value}]: {text}")
        return entry

    def reset(self) -> None:
        self._entries = []
        self._pending_user = ""
        self._pending_interviewer = ""
        self._questions_asked = 0
        self._answers_given = 0
