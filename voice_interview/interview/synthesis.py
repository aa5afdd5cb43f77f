"""
Speech synthesis controller.

speak() is awaited by the turn that calls it and resolves exactly once,
with True if the utterance played to completion and False if it was
canceled, had no voice, or the engine failed. At most one utterance is
in flight: a new speak() cancels the previous one first.
"""
import asyncio
import logging
import threading
from enum import Enum
from typing import Optional, Tuple

from ..config import VoiceConfig
from ..errors import SynthesisUnavailable
from ..infrastructure.speech import SpeechEngine, Voice, select_voice

logger = logging.getLogger("speech_synthesis")


class SpeechState(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


class _Utterance:
    """One speak() call: a stop flag for the engine thread and a once-only result."""

    def __init__(self, text: str, loop: asyncio.AbstractEventLoop):
        self.text = text
        self.stop_event = threading.Event()
        self.done: asyncio.Future = loop.create_future()
        self.task: Optional[asyncio.Future] = None

    def settle(self, played: bool) -> None:
        if not self.done.done():
            self.done.set_result(played)

    def stop(self) -> None:
        self.stop_event.set()
        self.settle(False)


class SpeechSynthesisController:
    """Serializes utterances on one speech engine."""

    def __init__(self, engine: SpeechEngine):
        self.engine = engine
        self._current: Optional[_Utterance] = None
        self._voice: Optional[Voice] = None
        self._voice_key: Optional[Tuple[str, str]] = None

    @property
    def state(self) -> SpeechState:
        return SpeechState.SPEAKING if self._current is not None else SpeechState.IDLE

    @property
    def speaking(self) -> bool:
        return self._current is not None

    async def speak(self, text: str, config: VoiceConfig) -> bool:
        """
        Speak `text` with a snapshot of `config` taken now.

        Returns:
            True if the utterance played to completion
        """
        settings = config.snapshot()
        previous = self._current
        self.cancel()

        utterance = _Utterance(text, asyncio.get_running_loop())
        self._current = utterance
        try:
            # Let the previous engine thread observe its stop flag before new audio starts
            if previous is not None and previous.task is not None:
                await asyncio.wait([previous.task])

            voice = await self._resolve_voice(settings)
            if voice is None:
                logger.warning(f"{SynthesisUnavailable.__name__}: no voices available, "
                               f"skipping utterance: {text[:60]!r}")
                utterance.settle(False)
            elif not utterance.stop_event.is_set():
                utterance.task = asyncio.ensure_future(asyncio.to_thread(
                    self.engine.play, text, voice, settings, utterance.stop_event))
                utterance.task.add_done_callback(lambda task: self._on_played(utterance, task))

            return await utterance.done
        except asyncio.CancelledError:
            utterance.stop()
            raise
        finally:
            if self._current is utterance:
                self._current = None

    def cancel(self) -> None:
        """Stop the current utterance, if any, and return to idle immediately."""
        utterance, self._current = self._current, None
        if utterance is not None:
            utterance.stop()
            logger.debug(f"Canceled utterance: {utterance.text[:60]!r}")

    @staticmethod
    def _on_played(utterance: _Utterance, task: asyncio.Future) -> None:
        if task.cancelled():
            utterance.settle(False)
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Speech engine failed, continuing silently: {error!r}")
            utterance.settle(False)
            return
        utterance.settle(bool(task.result()))

    async def _resolve_voice(self, settings: VoiceConfig) -> Optional[Voice]:
        key = (settings.language, settings.preferred_voice)
        if self._voice is not None and self._voice_key == key:
            return self._voice

        try:
            voices = await asyncio.to_thread(self.engine.list_voices)
        except SynthesisUnavailable as e:
            logger.warning(f"Could not load voices: {e}")
            return None

        voice = select_voice(voices, settings.language, settings.preferred_voice)
        if voice is not None:
            self._voice, self._voice_key = voice, key
            logger.info(f"Selected voice {voice.name} ({voice.language or 'any'})")
        return voice
