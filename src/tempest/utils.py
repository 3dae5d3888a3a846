import logging
import time
import signal

from datetime import datetime
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# ────────────────────────────────
# Time Helpers
# ────────────────────────────────


def now() -> float:
    return time.perf_counter()


def wall_clock() -> float:
    return time.time()


def clock_label() -> str:
    return datetime.now().strftime("%H:%M:%S")


# ────────────────────────────────
# Request Formatting
# ────────────────────────────────


def path_and_query(url: str, fallback: str) -> str:
    try:
        parts = urlsplit(url)
    except ValueError:
        return fallback
    if not parts.scheme:
        return fallback
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def body_preview(text: str, limit: int = 50) -> str:
    preview = text[:limit].replace("\r", "").replace("\n", "")
    if len(text) > limit:
        preview += "..."
    return preview


def normalize_error_message(exc: BaseException) -> str:
    msg = " ".join(str(exc).split())
    return msg or type(exc).__name__


# ────────────────────────────────
# Signal Handling
# ────────────────────────────────


class GracefulKiller:
    def __init__(self):
        self.kill_now = False
        self.signum: int | None = None
        self._previous = {
            signal.SIGINT: signal.signal(signal.SIGINT, self.exit_gracefully),
            signal.SIGTERM: signal.signal(signal.SIGTERM, self.exit_gracefully),
        }

    def restore(self):
        for signum, handler in self._previous.items():
            if handler is not None:
                signal.signal(signum, handler)

    def exit_gracefully(self, signum, frame):
        logger.warning(f"Received signal {signum}, stopping load test...")
        self.signum = signum
        self.kill_now = True
