from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional
from collections.abc import Callable, Mapping


DEFAULT_WORKER_COUNT = 5


class ConfigValidationError(ValueError):
    """Raised when a test configuration cannot be started."""


class AttackPattern(str, Enum):
    SUSTAINED = "sustained"
    RAMP_UP = "ramp-up"
    SPIKE = "spike"
    BURST = "burst"
    RANDOM = "random"

    @classmethod
    def parse(cls, value: Any) -> "AttackPattern":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.SUSTAINED


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class SecurityOptions:
    endpoint_scanning: bool = False
    brute_force: bool = False
    random_headers: bool = False
    error_inducing: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "SecurityOptions":
        data = data or {}
        return cls(
            endpoint_scanning=bool(_pick(data, "endpoint_scanning", "endpointScanning", False)),
            brute_force=bool(_pick(data, "brute_force", "bruteForce", False)),
            random_headers=bool(_pick(data, "random_headers", "randomHeaders", False)),
            error_inducing=bool(_pick(data, "error_inducing", "errorInducing", False)),
        )


@dataclass(frozen=True)
class TestConfig:
    target_url: str
    http_method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    start_rps: float = 1.0
    max_rps: float = 10.0
    duration: float = 60.0
    worker_count: int = DEFAULT_WORKER_COUNT
    attack_pattern: AttackPattern = AttackPattern.SUSTAINED
    security_options: SecurityOptions = field(default_factory=SecurityOptions)

    # pytest would otherwise try to collect this class
    __test__ = False

    def __post_init__(self):
        if not self.target_url or not str(self.target_url).strip():
            raise ConfigValidationError("Target URL is required")
        object.__setattr__(self, "target_url", str(self.target_url).strip())
        object.__setattr__(self, "http_method", (self.http_method or "GET").upper())
        object.__setattr__(self, "headers", dict(self.headers or {}))
        object.__setattr__(self, "attack_pattern", AttackPattern.parse(self.attack_pattern))
        if not self.worker_count:
            object.__setattr__(self, "worker_count", DEFAULT_WORKER_COUNT)
        if self.security_options is None:
            object.__setattr__(self, "security_options", SecurityOptions())

    @property
    def effective_workers(self) -> int:
        return max(1, int(self.worker_count))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TestConfig":
        """Build a config from snake_case or camelCase keys."""
        if not data:
            raise ConfigValidationError("Target URL is required")
        try:
            return cls(
                target_url=_pick(data, "target_url", "targetUrl", ""),
                http_method=_pick(data, "http_method", "httpMethod", "GET"),
                headers=_pick(data, "headers", "headers", None) or {},
                body=_pick(data, "body", "body", None) or None,
                start_rps=float(_pick(data, "start_rps", "startRps", 1.0)),
                max_rps=float(_pick(data, "max_rps", "maxRps", 10.0)),
                duration=float(_pick(data, "duration", "duration", 60.0)),
                worker_count=int(_pick(data, "worker_count", "workerCount", 0) or 0),
                attack_pattern=_pick(data, "attack_pattern", "attackPattern", AttackPattern.SUSTAINED),
                security_options=SecurityOptions.from_dict(
                    _pick(data, "security_options", "securityOptions", None)
                ),
            )
        except ConfigValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"Invalid test configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["attack_pattern"] = self.attack_pattern.value
        return data


@dataclass(frozen=True)
class StatusSnapshot:
    is_running: bool
    total_requests: int
    success_requests: int
    failed_requests: int
    current_rps: float
    errors: dict[str, int]
    start_time: float
    elapsed: int
    last_response_code: Optional[int]
    recent_logs: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["recent_logs"] = list(self.recent_logs)
        return data


@dataclass
class RunSummary:
    total: int
    success: int
    failed: int
    error_rate: float
    success_rate: float
    mean_rps: float
    elapsed: int
    last_response_code: Optional[int]
    top_errors: list[tuple[str, int]]


# Metrics callback: callable accepting summary dict
MetricsCallback = Callable[[dict[str, Any]], None]


def _pick(data: Mapping[str, Any], snake: str, camel: str, default: Any) -> Any:
    if snake in data and data[snake] is not None:
        return data[snake]
    if camel in data and data[camel] is not None:
        return data[camel]
    return default
