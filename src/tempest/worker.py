import asyncio
import aiohttp
import random
import logging

from collections.abc import Callable, Coroutine
from typing import Any
from .models import RunState, TestConfig
from .utils import now, wall_clock, clock_label, path_and_query, body_preview, normalize_error_message
from .shaping import target_rps, per_worker_rps
from .security import OutgoingRequest, apply_security_behaviors, apply_brute_force
from .stats import StatsAggregator


logger = logging.getLogger(__name__)

MIN_WORKER_RPS = 0.1
FAULT_BACKOFF_S = 1.0


class RunContext:
    """Everything one run generation owns: config, stats, session and tasks."""

    def __init__(
        self,
        generation: int,
        config: TestConfig,
        session: aiohttp.ClientSession,
        rng: random.Random | None = None,
    ) -> None:
        self.generation = generation
        self.config = config
        self.session = session
        self.rng = rng or random.Random()
        self.stats = StatsAggregator(start_time=wall_clock())
        self.state = RunState.RUNNING
        self.t0 = now()
        self.workers: list[asyncio.Task] = []
        self.sampler: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.state is RunState.RUNNING

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def elapsed(self) -> float:
        return now() - self.t0

    def launch(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def stop(self) -> bool:
        if not self.running:
            return False
        self.state = RunState.IDLE
        self._stop_event.set()
        if self.sampler is not None:
            self.sampler.cancel()
        return True

    async def wait_stopped(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True if the run was stopped meanwhile."""
        if self._stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def drain(self) -> None:
        await asyncio.gather(*self.workers, return_exceptions=True)
        if self.sampler is not None:
            await asyncio.gather(self.sampler, return_exceptions=True)
        pending = [t for t in self._inflight if not t.done()]
        while pending:
            logger.debug(f"Run {self.generation}: waiting on {len(pending)} in-flight requests")
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in self._inflight if not t.done()]
        await self.session.close()
        logger.info(
            f"Run {self.generation} drained: total={self.stats.total_requests}, "
            f"success={self.stats.success_requests}, failed={self.stats.failed_requests}"
        )


class Worker:
    def __init__(
        self,
        worker_id: int,
        ctx: RunContext,
        is_current: Callable[[int], bool],
    ) -> None:
        self.worker_id = worker_id
        self.ctx = ctx
        self._is_current = is_current

    async def run(self) -> None:
        ctx = self.ctx
        logger.debug(f"Worker {self.worker_id} started (run {ctx.generation})")
        while ctx.running:
            try:
                delay = self._issue_next()
            except Exception:
                logger.exception(f"[W{self.worker_id}] Worker iteration failed, backing off")
                delay = FAULT_BACKOFF_S
            if await ctx.wait_stopped(delay):
                break
        logger.debug(f"Worker {self.worker_id} stopped")

    def _issue_next(self) -> float:
        """Fire one request and return the pacing delay in seconds."""
        ctx = self.ctx
        config = ctx.config
        global_rps = target_rps(config, ctx.elapsed(), ctx.rng)
        worker_rps = per_worker_rps(global_rps, config.effective_workers)

        request = OutgoingRequest.from_config(config)
        url = apply_security_behaviors(request, config.target_url, config.security_options, ctx.rng)
        url = apply_brute_force(url, config.security_options, ctx.rng)

        ctx.launch(self._send(request, url))
        ctx.stats.record_issued()
        return 1.0 / max(MIN_WORKER_RPS, worker_rps)

    # ────────────────────────────────
    # HTTP Send Logic
    # ────────────────────────────────

    async def _send(self, request: OutgoingRequest, url: str) -> None:
        ctx = self.ctx
        try:
            async with ctx.session.request(
                request.method, url, headers=request.headers, data=request.body
            ) as resp:
                status = resp.status
                try:
                    text = await resp.text(errors="replace")
                except (aiohttp.ClientError, TimeoutError) as e:
                    logger.debug(f"[W{self.worker_id}] Could not read body from {url}: {e}")
                    text = ""
        except aiohttp.ClientError as e:
            logger.warning(f"[W{self.worker_id}] Connection error for {url}: {e}")
            self._record_failure(e)
            return
        except TimeoutError as e:
            logger.warning(f"[W{self.worker_id}] Timeout for {url}")
            self._record_failure(e)
            return
        except Exception as e:
            logger.error(f"[W{self.worker_id}] Unexpected error sending {url}: {e}")
            self._record_failure(e)
            return

        if not self._is_current(ctx.generation):
            logger.debug(f"[W{self.worker_id}] Discarding response from stale run {ctx.generation}")
            return

        success = 200 <= status < 400
        line = format_log_line(
            status,
            request.method,
            path_and_query(url, ctx.config.target_url),
            request.user_agent,
            body_preview(text),
        )
        ctx.stats.record_response(status, success, line)
        logger.debug(f"[W{self.worker_id}] {status} {request.method} {url}")

    def _record_failure(self, exc: BaseException) -> None:
        ctx = self.ctx
        if not self._is_current(ctx.generation):
            logger.debug(f"[W{self.worker_id}] Discarding failure from stale run {ctx.generation}")
            return
        msg = normalize_error_message(exc)
        ctx.stats.record_failure(msg, f"[Error] {msg}")


def format_log_line(
    status: int, method: str, path: str, user_agent: str | None, preview: str
) -> str:
    agent = f" [UA: {user_agent}]" if user_agent else ""
    return f"[{clock_label()}] {status} {method} {path}{agent} -> {preview or '(no body)'}"
