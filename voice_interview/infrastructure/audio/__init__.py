"""Audio capture, device access and processing."""

from .capture import MicrophoneCapture, RecordedAudio
from .devices import AudioInputDevice, PyAudioInputDevice, PyAudioOutput
from .processing import encode_wav, decode_wav, decode_audio, scale_volume

__all__ = [
    "MicrophoneCapture",
    "RecordedAudio",
    "AudioInputDevice",
    "PyAudioInputDevice",
    "PyAudioOutput",
    "encode_wav",
    "decode_wav",
    "decode_audio",
    "scale_volume",
]
