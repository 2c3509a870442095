"""Background consumer for pending change events."""

from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from coderef.config.constants import PENDING_BATCH_DEFAULT, PENDING_BATCH_MAX
from coderef.tracking.models import CodeChangeEvent, EventOutcome, ProcessingStatus

if TYPE_CHECKING:
    from coderef.store.repository import ReferenceStore
    from coderef.tracking.tracker import ChangeTracker

logger = structlog.get_logger()


class ConsumerState(Enum):
    """Event consumer state."""

    IDLE = "idle"
    PROCESSING = "processing"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class BatchResult:
    """Outcome counts for one pull of pending events."""

    pulled: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    outcomes: list[EventOutcome] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "pulled": self.pulled,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "events": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class ConsumerStatus:
    """Current consumer status."""

    state: ConsumerState
    running: bool
    processed_total: int
    failed_total: int
    last_batch_at: float | None = None
    last_error: str | None = None


def reference_chains(events: list[CodeChangeEvent]) -> list[list[CodeChangeEvent]]:
    """Group events that share any affected reference id.

    Groups are connected components over reference ids, so an event touching
    two references joins both of their chains. Each chain keeps the input
    order, which is timestamp order for pending pulls.
    """
    parent = list(range(len(events)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    owner: dict[str, int] = {}
    for i, event in enumerate(events):
        for reference_id in event.affected_references:
            if reference_id in owner:
                parent[find(i)] = find(owner[reference_id])
            else:
                owner[reference_id] = i

    chains: dict[int, list[CodeChangeEvent]] = {}
    for i, event in enumerate(events):
        chains.setdefault(find(i), []).append(event)
    return list(chains.values())


@dataclass
class EventConsumer:
    """
    Pulls pending events in timestamp order and hands them to the tracker.

    Design:
    - One pull takes at most batch_size events (capped at PENDING_BATCH_MAX)
    - Events sharing a reference id run one after another in pull order
    - Disjoint chains run concurrently, bounded by max_concurrency
    - A crash in one batch is logged and the loop keeps polling
    """

    store: ReferenceStore
    tracker: ChangeTracker
    batch_size: int = PENDING_BATCH_DEFAULT
    poll_interval_sec: float = 5.0
    max_concurrency: int = 4

    _state: ConsumerState = field(default=ConsumerState.IDLE, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _batch_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)
    _wake: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _processed_total: int = field(default=0, init=False)
    _failed_total: int = field(default=0, init=False)
    _last_batch_at: float | None = field(default=None, init=False)
    _last_error: str | None = field(default=None, init=False)

    def start(self) -> None:
        """Start the polling loop on the running event loop."""
        if self._task is not None:
            return
        self._state = ConsumerState.IDLE
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(
            "event_consumer_started",
            batch_size=self.batch_size,
            poll_interval_sec=self.poll_interval_sec,
            max_concurrency=self.max_concurrency,
        )

    async def stop(self) -> None:
        """Stop the polling loop, letting an in-flight batch finish."""
        self._state = ConsumerState.STOPPING
        if self._task is not None and not self._task.done():
            self._wake.set()
            async with self._batch_lock:
                self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        self._state = ConsumerState.STOPPED
        logger.info("event_consumer_stopped")

    def wake(self) -> None:
        """Poll now instead of waiting out the interval."""
        self._wake.set()

    async def _run(self) -> None:
        while self._state is not ConsumerState.STOPPING:
            try:
                await self.run_once()
            except Exception as e:
                self._last_error = str(e)
                logger.exception("event_batch_crashed")
            self._wake.clear()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval_sec)

    async def run_once(self, limit: int | None = None) -> BatchResult:
        """Pull one batch of pending events and process it."""
        size = min(limit or self.batch_size, PENDING_BATCH_MAX)
        async with self._batch_lock:
            events = self.store.get_pending_events(limit=size)
            result = BatchResult(pulled=len(events))
            if not events:
                return result

            if self._state is not ConsumerState.STOPPING:
                self._state = ConsumerState.PROCESSING
            started = time.monotonic()
            semaphore = asyncio.Semaphore(max(self.max_concurrency, 1))
            outcomes: dict[str, EventOutcome | BaseException | None] = {}

            async def _chain(chain: list[CodeChangeEvent]) -> None:
                async with semaphore:
                    for event in chain:
                        try:
                            outcomes[event.id] = await self.tracker.process_event(event.id)
                        except Exception as e:
                            outcomes[event.id] = e

            try:
                await asyncio.gather(*(_chain(chain) for chain in reference_chains(events)))
            finally:
                if self._state is ConsumerState.PROCESSING:
                    self._state = ConsumerState.IDLE

            for event in events:
                outcome = outcomes.get(event.id)
                if isinstance(outcome, BaseException):
                    result.failed += 1
                    self._last_error = str(outcome)
                    logger.error("event_processing_crashed", event_id=event.id, error=str(outcome))
                elif outcome is None:
                    result.skipped += 1
                else:
                    result.outcomes.append(outcome)
                    if outcome.status is ProcessingStatus.COMPLETED:
                        result.completed += 1
                    else:
                        result.failed += 1
                        self._last_error = outcome.error_message

            self._processed_total += result.completed + result.failed
            self._failed_total += result.failed
            self._last_batch_at = time.time()
            logger.info(
                "event_batch_processed",
                pulled=result.pulled,
                completed=result.completed,
                failed=result.failed,
                skipped=result.skipped,
                duration_seconds=round(time.monotonic() - started, 3),
            )
            return result

    @property
    def status(self) -> ConsumerStatus:
        """Get current consumer status."""
        return ConsumerStatus(
            state=self._state,
            running=self._task is not None and not self._task.done(),
            processed_total=self._processed_total,
            failed_total=self._failed_total,
            last_batch_at=self._last_batch_at,
            last_error=self._last_error,
        )
