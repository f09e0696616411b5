from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable

from sensordash.models.measurement import Channel, MeasurementRecord
from sensordash.repositories.base import MeasurementSource, TransportFailure
from sensordash.services.live_state import LiveStateStore, RenderSink
from sensordash.services.windowing import DEFAULT_WINDOW_SIZE, select_windows

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5.0


class LoopStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FAILED = "failed"
    STOPPED = "stopped"


class RefreshOutcome(str, Enum):
    APPLIED = "applied"
    EMPTY_BATCH = "empty_batch"
    TRANSPORT_FAILURE = "transport_failure"
    SUPERSEDED = "superseded"
    STOPPED = "stopped"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class RefreshLoop:
    """Polls the measurement source and swaps in a fresh dashboard state.

    Every tick bumps a generation counter and starts one fetch tagged with
    it. A completed fetch is applied only if its generation is still the
    latest; older fetches are left to finish and their results ignored.
    All failures end up as flags on the snapshot, never as exceptions out
    of the loop.
    """

    def __init__(
        self,
        *,
        source: MeasurementSource,
        store: LiveStateStore,
        auth_gate: Callable[[], bool],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        window_size: int = DEFAULT_WINDOW_SIZE,
        sinks: Iterable[RenderSink] = (),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._source = source
        self._store = store
        self._auth_gate = auth_gate
        self._interval = float(interval_seconds)
        self._window_size = window_size
        self._sinks: list[RenderSink] = list(sinks)
        self._clock = clock

        self._generation = 0
        self._pending: set[asyncio.Task[RefreshOutcome]] = set()
        self._scheduler: asyncio.Task[None] | None = None
        self._started = False
        self._stopped = False
        self._status = LoopStatus.IDLE
        self._last_outcome: RefreshOutcome | None = None

    @property
    def status(self) -> LoopStatus:
        return self._status

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_outcome(self) -> RefreshOutcome | None:
        return self._last_outcome

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def add_sink(self, sink: RenderSink) -> None:
        self._sinks.append(sink)

    async def start(self) -> bool:
        """Refresh once right away, then every interval.

        Returns False without doing anything when the auth gate is closed.
        """
        if self._stopped:
            raise RuntimeError("refresh loop has been stopped")
        if self._started:
            return True
        if not self._auth_gate():
            logger.info("Refresh loop not started: no authenticated session")
            return False

        self._started = True
        logger.info("Starting refresh loop (every %.1fs)", self._interval)
        await self.refresh_now()
        if not self._stopped:
            self._scheduler = asyncio.create_task(
                self._run(), name="sensordash-refresh-scheduler"
            )
        return True

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        # Invalidate every outstanding fetch before cancelling anything.
        self._generation += 1
        self._status = LoopStatus.STOPPED

        tasks: list[asyncio.Task] = list(self._pending)
        if self._scheduler is not None:
            tasks.append(self._scheduler)
            self._scheduler = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Refresh loop stopped")

    def tick(self) -> asyncio.Task[RefreshOutcome]:
        if self._stopped:
            raise RuntimeError("refresh loop has been stopped")
        self._generation += 1
        self._status = LoopStatus.FETCHING
        task = asyncio.create_task(
            self._fetch_and_apply(self._generation),
            name=f"sensordash-fetch-{self._generation}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def refresh_now(self) -> RefreshOutcome:
        if self._stopped:
            return RefreshOutcome.STOPPED
        task = self.tick()
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if self._stopped and task.cancelled():
                return RefreshOutcome.STOPPED
            raise

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self._interval)
            if self._stopped:
                break
            self.tick()

    async def _fetch_and_apply(self, generation: int) -> RefreshOutcome:
        try:
            batch = await self._source.get_all_measurements()
        except TransportFailure as e:
            return self._on_failure(generation, e.reason)
        except Exception as e:  # noqa: BLE001
            logger.exception("Unexpected error from measurement source")
            return self._on_failure(generation, str(e) or type(e).__name__)
        return self._on_batch(generation, batch)

    def _stale_outcome(self, generation: int) -> RefreshOutcome | None:
        if self._stopped:
            logger.debug("Discarding fetch #%d: loop stopped", generation)
            return RefreshOutcome.STOPPED
        if generation != self._generation:
            logger.debug(
                "Discarding fetch #%d: superseded by #%d", generation, self._generation
            )
            return RefreshOutcome.SUPERSEDED
        return None

    def _finish(
        self, outcome: RefreshOutcome, status: LoopStatus = LoopStatus.IDLE
    ) -> RefreshOutcome:
        self._status = status
        self._last_outcome = outcome
        return outcome

    def _on_failure(self, generation: int, reason: str) -> RefreshOutcome:
        stale = self._stale_outcome(generation)
        if stale is not None:
            return stale

        logger.warning("Measurement fetch failed: %s", reason)
        self._store.mark_failed(f"Backend unavailable: {reason}")
        # FAILED holds until the next tick starts fetching.
        return self._finish(RefreshOutcome.TRANSPORT_FAILURE, LoopStatus.FAILED)

    def _on_batch(self, generation: int, batch: list[MeasurementRecord]) -> RefreshOutcome:
        stale = self._stale_outcome(generation)
        if stale is not None:
            return stale

        if not batch:
            logger.warning("Backend returned no measurements; keeping previous snapshot")
            return self._finish(RefreshOutcome.EMPTY_BATCH)

        windows = select_windows(batch, size=self._window_size)
        state = self._store.apply_windows(windows, now=self._clock())
        logger.info(
            "Applied %d measurement(s) (%s)",
            len(batch),
            ", ".join(f"{c.value}={len(windows[c])}" for c in Channel),
        )
        for sink in self._sinks:
            try:
                sink.update(state)
            except Exception:  # noqa: BLE001
                logger.exception("Render sink %r failed", sink)
        return self._finish(RefreshOutcome.APPLIED)
