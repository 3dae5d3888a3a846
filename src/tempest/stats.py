import threading

from collections import defaultdict, deque
from .models import StatusSnapshot


MAX_RECENT_LOGS = 2000


class StatsAggregator:
    """Counters and recent activity for a single run.

    Every mutation happens under one lock, so workers, the sampler and
    status readers on other threads can share an instance.
    """

    def __init__(self, start_time: float = 0.0, max_logs: int = MAX_RECENT_LOGS) -> None:
        self._lock = threading.Lock()
        self.start_time = start_time
        self.elapsed = 0
        self.total_requests = 0
        self.success_requests = 0
        self.failed_requests = 0
        self.current_rps = 0.0
        self.last_response_code: int | None = None
        self.errors: dict[str, int] = defaultdict(int)
        self.recent_logs: deque[str] = deque(maxlen=max_logs)
        self._issued_this_second = 0

    def record_issued(self) -> None:
        with self._lock:
            self.total_requests += 1
            self._issued_this_second += 1

    def record_response(self, status: int, success: bool, line: str) -> None:
        with self._lock:
            if success:
                self.success_requests += 1
            else:
                self.failed_requests += 1
            self.last_response_code = status
            self.recent_logs.appendleft(line)

    def record_failure(self, message: str, line: str) -> None:
        with self._lock:
            self.failed_requests += 1
            self.errors[message] += 1
            self.recent_logs.appendleft(line)

    def add_log(self, line: str) -> None:
        with self._lock:
            self.recent_logs.appendleft(line)

    def sample_rps(self) -> float:
        """Publish and reset the per-second issue counter."""
        with self._lock:
            self.current_rps = float(self._issued_this_second)
            self._issued_this_second = 0
            return self.current_rps

    def set_elapsed(self, elapsed: int) -> None:
        with self._lock:
            self.elapsed = elapsed

    def snapshot(self, is_running: bool) -> StatusSnapshot:
        with self._lock:
            return StatusSnapshot(
                is_running=is_running,
                total_requests=self.total_requests,
                success_requests=self.success_requests,
                failed_requests=self.failed_requests,
                current_rps=self.current_rps,
                errors=dict(self.errors),
                start_time=self.start_time,
                elapsed=self.elapsed,
                last_response_code=self.last_response_code,
                recent_logs=tuple(self.recent_logs),
            )
