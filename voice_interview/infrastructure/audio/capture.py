"""
Microphone capture for one answer at a time.

Recording is bounded by an explicit stop() rather than a timer. Audio
arrives in fixed 100ms chunks from the device callback and is only
joined and encoded when the recording stops.
"""
import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .devices import AudioInputDevice, PyAudioInputDevice
from .processing import to_mono_pcm16, encode_wav, rms_level
from ...config import SAMPLE_RATE_TARGET, SAMPLE_RATE_CAPTURE, CHANNELS, AUDIO_MIME_TYPE

logger = logging.getLogger("audio_capture")


@dataclass(frozen=True)
class RecordedAudio:
    """Encoded result of one recording session."""
    data: bytes
    sample_rate: int = SAMPLE_RATE_TARGET
    mime_type: str = AUDIO_MIME_TYPE
    chunk_count: int = 0
    level: float = 0.0

    @property
    def is_empty(self) -> bool:
        return len(self.data) == 0

    @property
    def duration_seconds(self) -> float:
        # 44-byte WAV header, 2 bytes per mono sample
        if self.is_empty:
            return 0.0
        return max(0, len(self.data) - 44) / 2 / self.sample_rate


class MicrophoneCapture:
    """
    Owns exclusive access to one input device between start() and stop().

    A second start() while recording is ignored. stop() always releases
    the device, is safe to call when nothing is recording, and may return
    an empty RecordedAudio when no chunk was delivered.
    """

    def __init__(self,
                 device_factory: Callable[[], AudioInputDevice] = PyAudioInputDevice,
                 sr_target: int = SAMPLE_RATE_TARGET):
        self.device_factory = device_factory
        self.sr_target = sr_target
        self._device: Optional[AudioInputDevice] = None
        self._chunks: List[bytes] = []
        self._lock = threading.Lock()

    @property
    def recording(self) -> bool:
        return self._device is not None

    def buffered_chunks(self) -> int:
        """Number of chunks captured so far in the current session."""
        with self._lock:
            return len(self._chunks)

    def _on_chunk(self, chunk: bytes) -> None:
        # Called from the audio thread; late callbacks after stop() are dropped
        with self._lock:
            if self._device is None:
                return
            self._chunks.append(bytes(chunk))

    async def start(self) -> bool:
        """
        Acquire the input device and begin buffering audio.

        Returns:
            False if a recording was already active and the call was ignored

        Raises:
            DeviceAccessDenied: permission refused or device unusable
            NoDeviceFound: no input device exists
        """
        if self._device is not None:
            logger.info("Recording already active, ignoring start")
            return False

        device = self.device_factory()
        with self._lock:
            self._chunks = []
            self._device = device

        try:
            await asyncio.to_thread(device.open, self._on_chunk)
        except BaseException as e:
            if self._device is device:
                self._device = None
            device.close()
            logger.error(f"Failed to start recording: {e!r}")
            raise

        if self._device is not device:
            # stop() ran while the device was opening
            device.close()
            return False

        logger.info("Recording started")
        return True

    async def stop(self) -> RecordedAudio:
        """Release the device and return everything buffered so far."""
        with self._lock:
            device, self._device = self._device, None
        if device is not None:
            try:
                await asyncio.to_thread(device.close)
            except Exception as e:
                logger.warning(f"Error releasing input device: {e}")

        with self._lock:
            chunks, self._chunks = self._chunks, []

        if device is None and not chunks:
            return RecordedAudio(data=b"", sample_rate=self.sr_target)

        sample_rate = getattr(device, "sample_rate", SAMPLE_RATE_CAPTURE)
        channels = getattr(device, "channels", CHANNELS)
        recorded = self._finalize(chunks, sample_rate, channels)
        logger.info(f"Recording stopped: chunks={recorded.chunk_count} "
                    f"duration={recorded.duration_seconds:.2f}s level={recorded.level:.4f}")
        return recorded

    def _finalize(self, chunks: List[bytes], sample_rate: int, channels: int) -> RecordedAudio:
        pcm16 = to_mono_pcm16(b"".join(chunks), channels, sample_rate, self.sr_target)
        return RecordedAudio(
            data=encode_wav(pcm16, self.sr_target),
            sample_rate=self.sr_target,
            chunk_count=len(chunks),
            level=rms_level(pcm16),
        )
