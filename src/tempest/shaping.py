import math
import random

from .models import AttackPattern, TestConfig


SPIKE_CYCLE_S = 10
SPIKE_DURATION_S = 2
BURST_CYCLE_S = 5


def target_rps(config: TestConfig, elapsed: float, rng: random.Random | None = None) -> float:
    """Global requests/second the run should offer at `elapsed` seconds."""
    start, peak = config.start_rps, config.max_rps
    pattern = config.attack_pattern

    if pattern is AttackPattern.RAMP_UP:
        if elapsed >= config.duration:
            return peak
        return start + (peak - start) * min(1.0, elapsed / config.duration)

    if pattern is AttackPattern.SPIKE:
        return peak if elapsed % SPIKE_CYCLE_S < SPIKE_DURATION_S else start

    if pattern is AttackPattern.BURST:
        return peak if math.floor(elapsed / BURST_CYCLE_S) % 2 == 0 else start

    if pattern is AttackPattern.RANDOM:
        rng = rng or random
        span = max(0, math.floor(peak - start))
        return start + rng.randint(0, span)

    return peak


def per_worker_rps(global_rps: float, worker_count: int) -> float:
    return global_rps / max(1, worker_count)
