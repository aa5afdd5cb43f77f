"""
Basic audio processing functions including format conversions and WAV encoding.
"""
import io
import wave
from math import gcd
from typing import Tuple

import numpy as np
from scipy.signal import resample_poly


def pcm16_to_array(pcm16: bytes, channels: int = 1) -> np.ndarray:
    """Convert interleaved PCM16 bytes to a float32 array shaped (frames, channels)."""
    samples = np.frombuffer(pcm16, dtype=np.int16).astype(np.float32) / 32768.0
    usable = len(samples) - (len(samples) % channels)
    return samples[:usable].reshape(-1, channels)


def array_to_pcm16(audio: np.ndarray) -> bytes:
    """Convert a float array in [-1, 1] to PCM16 bytes."""
    return np.clip(audio * 32767, -32768, 32767).astype(np.int16).tobytes()


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert multi-channel audio to mono by averaging channels."""
    if x.ndim == 1:
        return x
    return np.mean(x, axis=1)


def resample(mono: np.ndarray, sr_from: int, sr_to: int) -> np.ndarray:
    """Resample mono audio between arbitrary integer rates."""
    if sr_from == sr_to or mono.size == 0:
        return mono.astype(np.float32)
    divisor = gcd(sr_from, sr_to)
    return resample_poly(mono, up=sr_to // divisor, down=sr_from // divisor).astype(np.float32)


def to_mono_pcm16(pcm16: bytes, channels: int, sr_from: int, sr_to: int) -> bytes:
    """Downmix and resample raw capture data to mono PCM16 at the target rate."""
    if not pcm16:
        return b""
    mono = stereo_to_mono(pcm16_to_array(pcm16, channels))
    return array_to_pcm16(resample(mono, sr_from, sr_to))


def rms_level(pcm16: bytes) -> float:
    """Root-mean-square level of PCM16 audio, 0.0 for empty input."""
    if not pcm16:
        return 0.0
    samples = pcm16_to_array(pcm16).flatten()
    return float(np.sqrt(np.mean(samples ** 2)))


def scale_volume(pcm16: bytes, volume: float) -> bytes:
    """Apply a linear volume factor (0.0 to 1.0) to PCM16 audio."""
    volume = max(0.0, min(1.0, volume))
    if volume >= 1.0 or not pcm16:
        return pcm16
    samples = np.frombuffer(pcm16, dtype=np.int16).astype(np.float32) * volume
    return samples.astype(np.int16).tobytes()


def encode_wav(pcm16: bytes, sr: int, channels: int = 1) -> bytes:
    """Wrap PCM16 audio in a WAV container. Empty audio stays empty."""
    if not pcm16:
        return b""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16)
    return buffer.getvalue()


def decode_wav(data: bytes) -> Tuple[bytes, int, int]:
    """Return (pcm16, sample_rate, channels) from WAV bytes."""
    with wave.open(io.BytesIO(data), "rb") as wf:
        return wf.readframes(wf.getnframes()), wf.getframerate(), wf.getnchannels()


def decode_audio(data: bytes) -> Tuple[bytes, int, int]:
    """
    Return (pcm16, sample_rate, channels) from WAV or compressed (MP3, OGG) bytes.

    Compressed formats are decoded with soundfile, imported on first use.

    Raises:
        ValueError: if the bytes cannot be decoded
    """
    if data[:4] == b"RIFF":
        try:
            return decode_wav(data)
        except (wave.Error, EOFError) as e:
            raise ValueError(f"Invalid WAV data: {e}") from e

    import soundfile as sf
    try:
        samples, sr = sf.read(io.BytesIO(data), dtype="int16", always_2d=True)
    except RuntimeError as e:
        raise ValueError(f"Unsupported audio data: {e}") from e
    return samples.tobytes(), int(sr), int(samples.shape[1])
