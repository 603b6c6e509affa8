"""Query scheduling — debounced, single-flight execution of the POI pipeline.

All mutation of shared pipeline state (query parameters, the current result
set, loading/error flags) goes through ``QueryScheduler``. It must be created
and driven from inside a running asyncio event loop.

State machine::

    IDLE ──mutation──▶ DEBOUNCING ──timer──▶ IN_FLIGHT ──done──▶ IDLE
                          ▲  │ mutation resets timer      │
                          └──┴────────── state changed ◀──┘

A mutation during IN_FLIGHT is recorded as pending. Immediate triggers (origin,
radius, refresh) additionally cancel the in-flight fetch. Every fetch carries a
sequence number and only the latest sequence may publish. A fetch that was
asked to cancel never publishes, even if its fetcher returns anyway.

Meant for long-lived event-loop hosts (an async service, a notebook kernel).
The Streamlit app reruns its script per interaction and calls ``compute.run``
directly instead.
"""

import asyncio
import contextlib
import enum
import functools
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from poiscope.compute import enrich, filter_pois
from poiscope.config import (
    DEFAULT_FETCH_TIMEOUT_MS,
    DEFAULT_SELECTION_DEBOUNCE_MS,
    RADIUS_MAX_M,
    RADIUS_MIN_M,
    clamp_radius,
)
from poiscope.errors import BuildError, FetchError
from poiscope.fetch import OverpassFetcher
from poiscope.models import Coordinate, PipelineResult, QueryState, RawPOI
from poiscope.query import build_query, tag_values_for
from poiscope.stats import compute_statistics
from poiscope.taxonomy import CategoryTaxonomy

logger = logging.getLogger(__name__)

Listener = Callable[[PipelineResult], None]


class SchedulerStatus(enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"


class QueryScheduler:
    """Owns the QueryState and decides when the pipeline runs.

    Args:
        initial: Starting origin, radius, and selection. No fetch is issued
            until the first mutation or ``refresh()``.
        taxonomy: Category definitions used to build, classify, and filter.
        fetcher: Anything with an ``async fetch(payload, timeout_ms)`` method.
        timeout_ms: Hard per-fetch deadline passed to the fetcher.
        selection_debounce_s: Delay applied to category selection changes.
        immediate_delay_s: Delay applied to origin/radius changes and refresh.
        radius_bounds: (min, max) used to clamp ``set_radius`` input.
    """

    def __init__(
        self,
        initial: QueryState,
        taxonomy: CategoryTaxonomy,
        fetcher: OverpassFetcher,
        *,
        timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS,
        selection_debounce_s: float = DEFAULT_SELECTION_DEBOUNCE_MS / 1000,
        immediate_delay_s: float = 0.0,
        radius_bounds: tuple[int, int] = (RADIUS_MIN_M, RADIUS_MAX_M),
    ) -> None:
        self.taxonomy = taxonomy
        self.timeout_ms = timeout_ms
        self.selection_debounce_s = selection_debounce_s
        self.immediate_delay_s = immediate_delay_s
        self.radius_bounds = radius_bounds
        self._fetcher = fetcher

        self._state = initial
        self._version = 0  # Bumped on every accepted mutation
        self._fetch_version = 0  # Version the latest fetch was started from
        self._seq = 0
        self._pending_delay: float | None = None
        self._status = SchedulerStatus.IDLE
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._listeners: list[Listener] = []
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self._result = PipelineResult(
            state=initial, enriched=(), visible=(), statistics=compute_statistics(())
        )

    # --- Read-only views ---

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def result(self) -> PipelineResult:
        return self._result

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently started fetch."""
        return self._seq

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a result listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Mutations ---

    def set_origin(self, origin: Coordinate) -> None:
        """Move the query centre (map click, marker drag-end, saved place)."""
        if not origin.is_valid:
            logger.warning(
                "Ignoring out-of-range origin lat=%s lon=%s",
                origin.latitude,
                origin.longitude,
            )
            return
        self._mutate(self._state.with_origin(origin), self.immediate_delay_s)

    def set_radius(self, radius_m: float) -> None:
        lo, hi = self.radius_bounds
        self._mutate(self._state.with_radius(clamp_radius(radius_m, lo, hi)), self.immediate_delay_s)

    def set_selection(self, selected: Iterable[str]) -> None:
        """Replace the category selection. Re-filters now, refetches after the debounce."""
        self._mutate(
            self._state.with_selection(frozenset(selected)), self.selection_debounce_s
        )
        self._refilter()

    def toggle_category(self, label: str) -> None:
        current = self._state.selected_categories
        self.set_selection(current - {label} if label in current else current | {label})

    def select_all(self) -> None:
        self.set_selection(self.taxonomy.labels)

    def clear_selection(self) -> None:
        self.set_selection(())

    def refresh(self) -> None:
        """Explicit "update" action: refetch the current state without delay."""
        self._mutate(self._state, self.immediate_delay_s)

    async def wait_idle(self) -> None:
        await self._idle.wait()

    async def aclose(self) -> None:
        """Cancel timers and any in-flight fetch, and drop all listeners."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._listeners.clear()
        self._set_status(SchedulerStatus.IDLE)

    async def __aenter__(self) -> "QueryScheduler":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # --- Internals ---

    def _mutate(self, new_state: QueryState, delay: float) -> None:
        if self._closed:
            raise RuntimeError("scheduler is closed")
        self._state = new_state
        self._version += 1
        if self._status is SchedulerStatus.IN_FLIGHT:
            if self._pending_delay is None or delay < self._pending_delay:
                self._pending_delay = delay
            if delay <= self.immediate_delay_s and self._task is not None:
                logger.debug("Cancelling fetch #%d for an immediate trigger", self._seq)
                self._task.cancel()
            return
        self._schedule(delay)

    def _schedule(self, delay: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._start_fetch)
        self._set_status(SchedulerStatus.DEBOUNCING)

    def _start_fetch(self) -> None:
        self._timer = None
        state = self._state
        try:
            payload = build_query(
                state.origin,
                state.radius_m,
                tag_values_for(self.taxonomy, state.selected_categories),
                tag_key=self.taxonomy.tag_key,
            )
        except BuildError as exc:
            logger.warning("Query rejected before fetch: %s", exc)
            self._set_status(SchedulerStatus.IDLE)
            return

        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._seq += 1
        self._fetch_version = self._version
        self._pending_delay = None
        self._set_status(SchedulerStatus.IN_FLIGHT)
        # Completion runs as a done-callback so a task cancelled before its
        # first step still leaves IN_FLIGHT
        self._task = asyncio.get_running_loop().create_task(
            self._run_fetch(self._seq, state, payload)
        )
        self._task.add_done_callback(functools.partial(self._on_fetch_done, self._seq))
        self._publish(replace(self._result, loading=True))

    async def _run_fetch(self, seq: int, state: QueryState, payload: str) -> None:
        logger.debug("Fetch #%d started (radius=%d m)", seq, state.radius_m)
        try:
            raw = await self._fetcher.fetch(payload, self.timeout_ms)
        except FetchError as exc:
            if self._is_current(seq):
                self._publish(
                    replace(self._result, loading=self._is_stale(), error=exc.user_message)
                )
            return
        if self._is_current(seq):
            self._apply(state, raw)
        else:
            logger.debug("Discarding result of superseded fetch #%d", seq)

    def _is_current(self, seq: int) -> bool:
        # A fetcher may swallow CancelledError and return; its data is still stale
        task = asyncio.current_task()
        return seq == self._seq and not (task is not None and task.cancelling())

    def _on_fetch_done(self, seq: int, task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            logger.debug("Fetch #%d cancelled", seq)
        elif task.exception() is not None:
            logger.error("Fetch #%d crashed", seq, exc_info=task.exception())
        self._complete(seq)

    def _apply(self, state: QueryState, raw: tuple[RawPOI, ...]) -> None:
        enriched = enrich(raw, state.origin, self.taxonomy)
        visible = filter_pois(enriched, self._state.selected_categories)
        self._publish(
            PipelineResult(
                state=state,
                enriched=enriched,
                visible=visible,
                statistics=compute_statistics(visible),
                loading=self._is_stale(),
                error=None,
            )
        )

    def _complete(self, seq: int) -> None:
        if seq != self._seq or self._closed:
            return
        self._task = None
        if self._is_stale():
            delay = self._pending_delay if self._pending_delay is not None else 0.0
            self._pending_delay = None
            logger.debug("State changed during fetch #%d, rescheduling", seq)
            self._schedule(delay)
        else:
            self._set_status(SchedulerStatus.IDLE)

    def _is_stale(self) -> bool:
        return self._version != self._fetch_version

    def _refilter(self) -> None:
        visible = filter_pois(self._result.enriched, self._state.selected_categories)
        self._publish(
            replace(
                self._result,
                visible=visible,
                statistics=compute_statistics(visible),
                loading=self._status is not SchedulerStatus.IDLE or self._is_stale(),
            )
        )

    def _publish(self, result: PipelineResult) -> None:
        self._result = result
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Result listener %r failed", listener)

    def _set_status(self, status: SchedulerStatus) -> None:
        if status is not self._status:
            logger.debug("Scheduler %s -> %s", self._status.value, status.value)
        self._status = status
        if status is SchedulerStatus.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
