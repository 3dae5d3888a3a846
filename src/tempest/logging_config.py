# tempest/logging_config.py
import logging
import os
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
NOISY_LOGGERS = ("aiohttp.access", "uvicorn.access")


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """
    Configure the root logger for a load-test process.

    Level falls back to $TEMPEST_LOG_LEVEL, then INFO. Records go to stdout
    and, when log_file is given, to that file as well.
    """
    level = (level or os.getenv("TEMPEST_LOG_LEVEL") or "INFO").upper()

    logger = logging.getLogger()
    logger.setLevel(level)

    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info(f"Logging to file: {log_file}")

    # Per-request access lines would drown the sampler output under load
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.error("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = handle_exception

    return logger
