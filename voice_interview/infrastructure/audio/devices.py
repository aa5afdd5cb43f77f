"""
Audio device access through PyAudio.

PyAudio is imported lazily so the rest of the package (and its tests)
works on machines without PortAudio.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ...config import SAMPLE_RATE_CAPTURE, CHANNELS, CHUNK_MS, SPEAKER_CHUNK_FRAMES
from ...errors import DeviceAccessDenied, NoDeviceFound, SynthesisUnavailable
from ...utils import with_suppressed_audio_warnings

logger = logging.getLogger("audio_devices")

ChunkHandler = Callable[[bytes], None]


class AudioInputDevice(ABC):
    """Exclusive handle on one audio input device."""

    sample_rate: int = SAMPLE_RATE_CAPTURE
    channels: int = CHANNELS

    @abstractmethod
    def open(self, on_chunk: ChunkHandler) -> None:
        """Acquire the device and start delivering PCM16 chunks to on_chunk."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivery and release the device. Must be idempotent."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while the device is held."""


def find_input_device(pa) -> Optional[int]:
    """Pick the default input device, else the first device with input channels."""
    try:
        return int(pa.get_default_input_device_info()["index"])
    except (OSError, IOError, KeyError):
        logger.info("No default input device, scanning all devices")

    for i in range(pa.get_device_count()):
        try:
            info = pa.get_device_info_by_index(i)
        except (OSError, IOError):
            continue
        max_input_channels = info.get("maxInputChannels", 0)
        if isinstance(max_input_channels, (int, float)) and max_input_channels > 0:
            logger.info(f"Using input device {i}: {info.get('name')}")
            return i
    return None


class PyAudioInputDevice(AudioInputDevice):
    """Microphone input using a PyAudio callback stream."""

    def __init__(self,
                 device_index: Optional[int] = None,
                 sample_rate: int = SAMPLE_RATE_CAPTURE,
                 channels: int = CHANNELS,
                 chunk_ms: int = CHUNK_MS):
        self.device_index = device_index
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_chunk = int(sample_rate * chunk_ms / 1000)
        self._pa = None
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    @with_suppressed_audio_warnings
    def open(self, on_chunk: ChunkHandler) -> None:
        try:
            import pyaudio
        except ImportError as e:
            raise NoDeviceFound(f"PyAudio is not installed: {e}") from e

        pa = pyaudio.PyAudio()
        try:
            index = self.device_index if self.device_index is not None else find_input_device(pa)
            if index is None:
                raise NoDeviceFound("No audio input device found")

            def _callback(in_data, frame_count, time_info, status):
                on_chunk(in_data)
                return (None, pyaudio.paContinue)

            stream = pa.open(format=pyaudio.paInt16,
                             channels=self.channels,
                             rate=self.sample_rate,
                             input=True,
                             input_device_index=index,
                             frames_per_buffer=self.frames_per_chunk,
                             stream_callback=_callback)
            stream.start_stream()
        except NoDeviceFound:
            pa.terminate()
            raise
        except (OSError, IOError, ValueError) as e:
            pa.terminate()
            raise DeviceAccessDenied(f"Cannot open microphone: {e}") from e

        self._pa, self._stream = pa, stream
        logger.info(f"Microphone opened: device={index} rate={self.sample_rate} channels={self.channels}")

    def close(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream, self._pa = None, None
        try:
            if stream is not None:
                stream.stop_stream()
                stream.close()
        finally:
            if pa is not None:
                pa.terminate()
                logger.info("Microphone released")


class PyAudioOutput:
    """Blocking PCM16 playback that checks a stop flag between chunks."""

    def __init__(self, chunk_frames: int = SPEAKER_CHUNK_FRAMES):
        self.chunk_frames = chunk_frames

    @with_suppressed_audio_warnings
    def play(self, pcm16: bytes, sample_rate: int, channels: int,
             stop_event: threading.Event) -> bool:
        """
        Play audio until finished or stop_event is set.

        Returns:
            True if the whole buffer was played
        """
        try:
            import pyaudio
        except ImportError as e:
            raise SynthesisUnavailable(f"PyAudio is not installed: {e}") from e

        pa = pyaudio.PyAudio()
        try:
            stream = pa.open(format=pyaudio.paInt16, channels=channels,
                             rate=sample_rate, output=True)
        except (OSError, IOError) as e:
            pa.terminate()
            raise SynthesisUnavailable(f"Cannot open speaker: {e}") from e

        bytes_per_chunk = self.chunk_frames * channels * 2
        try:
            for offset in range(0, len(pcm16), bytes_per_chunk):
                if stop_event.is_set():
                    return False
                stream.write(pcm16[offset:offset + bytes_per_chunk])
            return not stop_event.is_set()
        finally:
            stream.stop_stream()
            stream.close()
            pa.terminate()
