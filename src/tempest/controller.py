import asyncio
import aiohttp
import math
import random
import logging

from collections.abc import Mapping
from typing import Any
from .models import StatusSnapshot, TestConfig
from .stats import StatsAggregator
from .worker import RunContext, Worker


logger = logging.getLogger(__name__)

SAMPLE_INTERVAL_S = 1.0


class LoadTestController:
    """Owns the lifecycle of load-test runs, one active run at a time.

    `start`, `stop` and `get_status` must be called from the event loop the
    run's tasks live on.
    """

    def __init__(
        self,
        request_timeout_s: float = 30.0,
        rng: random.Random | None = None,
    ) -> None:
        self.request_timeout_s = request_timeout_s
        self.rng = rng
        self._generation = 0
        self._run: RunContext | None = None
        self._idle_stats = StatsAggregator()
        self._drains: set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._run is not None and self._run.running

    @property
    def config(self) -> TestConfig | None:
        return self._run.config if self._run else None

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ────────────────────────────────
    # Lifecycle
    # ────────────────────────────────

    def start(self, config: TestConfig | Mapping[str, Any]) -> TestConfig:
        if not isinstance(config, TestConfig):
            config = TestConfig.from_dict(config)

        if self.is_running:
            logger.info(f"Run {self._generation} still active, stopping it first")
            self.stop()

        self._generation += 1
        ctx = RunContext(self._generation, config, self._create_session(), rng=self.rng)
        self._run = ctx

        logger.info(
            f"Starting load test run {ctx.generation}: {config.http_method} {config.target_url} | "
            f"pattern={config.attack_pattern.value}, rps={config.start_rps}->{config.max_rps}, "
            f"duration={config.duration}s, workers={config.effective_workers}"
        )

        ctx.workers = [
            asyncio.create_task(Worker(i, ctx, self.is_current).run())
            for i in range(config.effective_workers)
        ]
        ctx.sampler = asyncio.create_task(self._sample(ctx))
        return config

    def stop(self) -> None:
        ctx = self._run
        if ctx is None or not ctx.stop():
            return
        logger.info(f"Stopping load test run {ctx.generation}")
        task = asyncio.create_task(ctx.drain())
        self._drains.add(task)
        task.add_done_callback(self._drains.discard)

    def get_status(self) -> StatusSnapshot:
        ctx = self._run
        if ctx is None:
            return self._idle_stats.snapshot(is_running=False)
        if ctx.running:
            elapsed = math.floor(ctx.elapsed())
            ctx.stats.set_elapsed(elapsed)
            if elapsed >= ctx.config.duration:
                logger.info(f"Run {ctx.generation} reached its {ctx.config.duration}s duration")
                self.stop()
        return ctx.stats.snapshot(is_running=ctx.running)

    async def shutdown(self) -> None:
        """Stop the active run and wait until every run has drained."""
        self.stop()
        pending = [t for t in self._drains if not t.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in self._drains if not t.done()]

    # ────────────────────────────────
    # Internals
    # ────────────────────────────────

    def _create_session(self) -> aiohttp.ClientSession:
        connector = aiohttp.TCPConnector(limit=0)
        timeout = aiohttp.ClientTimeout(total=self.request_timeout_s)
        return aiohttp.ClientSession(connector=connector, timeout=timeout)

    async def _sample(self, ctx: RunContext) -> None:
        while ctx.running:
            if await ctx.wait_stopped(SAMPLE_INTERVAL_S):
                break
            rps = ctx.stats.sample_rps()
            logger.info(
                f"[LoadTest] RPS: {rps:.0f} | Total: {ctx.stats.total_requests} | "
                f"In flight: {ctx.inflight}"
            )
