__all__ = [
    "LoadTestController",
    "TestConfig",
    "SecurityOptions",
    "AttackPattern",
    "StatusSnapshot",
    "ConfigValidationError",
    "target_rps",
    "compute_summary",
]


from .controller import LoadTestController
from .models import TestConfig, SecurityOptions, AttackPattern, StatusSnapshot, ConfigValidationError
from .shaping import target_rps
from .metrics import compute_summary
