"""
Logging setup for the console interview.

Everything goes to the log file; the console only shows critical
records because the candidate-facing output is printed directly.
"""
import os
import logging

# HTTP and Google client libraries log every request at DEBUG
NOISY_LOGGERS = ("urllib3", "google.auth", "google.api_core", "grpc")


def setup_logging(log_file_path: str, level: str = "DEBUG") -> str:
    """
    Route all interview loggers to `log_file_path`.

    Args:
        log_file_path: Log file, appended to across interviews
        level: Level name for the file handler

    Returns:
        Path to the log file
    """
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_file_path, mode='a', encoding='utf-8')
    file_handler.setLevel(getattr(logging, level.upper(), logging.DEBUG))
    file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s - %(message)s'))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.CRITICAL)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("setup").info(f"Logging to {log_file_path} at {level.upper()}")
    return log_file_path
