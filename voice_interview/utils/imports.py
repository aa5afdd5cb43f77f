"""
Quieting PortAudio/ALSA and gRPC output while devices are opened.

PortAudio prints ALSA and JACK probing errors straight to file
descriptor 2, so redirecting sys.stderr is not enough.
"""
import os
import functools
from contextlib import contextmanager

QUIET_ENV = {
    "JACK_NO_START_SERVER": "1",
    "GRPC_VERBOSITY": "ERROR",
    "GLOG_minloglevel": "2",
}

for _name, _value in QUIET_ENV.items():
    os.environ.setdefault(_name, _value)


@contextmanager
def native_stderr_silenced():
    """Point fd 2 at /dev/null for the duration of the block."""
    try:
        saved_fd = os.dup(2)
    except OSError:
        # No usable stderr (e.g. detached process); nothing to silence
        yield
        return

    devnull_fd = os.open(os.devnull, os.O_WRONLY)
    try:
        os.dup2(devnull_fd, 2)
        yield
    finally:
        os.dup2(saved_fd, 2)
        os.close(saved_fd)
        os.close(devnull_fd)


def with_suppressed_audio_warnings(func):
    """Decorator form of native_stderr_silenced() for device open/playback calls."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with native_stderr_silenced():
            return func(*args, **kwargs)
    return wrapper
