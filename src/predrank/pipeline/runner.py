"""Run orchestrator - one fetch/rank/snapshot/diff/update/sweep pass."""

from __future__ import annotations

import threading
import time
import uuid
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any, Callable

import duckdb
import httpx
import structlog
from pydantic import BaseModel, Field

from predrank.errors import EmptyGeneration, PersistenceFailure, PredrankError, RunInProgress
from predrank.ingestion.gamma import fetch_active_listings
from predrank.ingestion.normalize import normalize
from predrank.models import CanonicalMarket, EventKind
from predrank.ranking.ranker import select_top_k
from predrank.ranking.trends import detect
from predrank.storage.events import append_events
from predrank.storage.markets import current_top_k, replace_top_k
from predrank.storage.retention import SweepCounts, sweep
from predrank.storage.snapshots import snapshot

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from predrank.config import Settings

log = structlog.get_logger(__name__)

# Runs in one process are serialized; overlapping triggers get RunInProgress.
_run_lock = threading.Lock()


class RunState(str, Enum):
    FETCHING = "FETCHING"
    VALIDATING = "VALIDATING"
    RANKING = "RANKING"
    SNAPSHOTTING = "SNAPSHOTTING"
    DIFFING = "DIFFING"
    UPDATING = "UPDATING"
    SWEEPING = "SWEEPING"
    DONE = "DONE"
    FAILED = "FAILED"


class RankedEntry(BaseModel):
    rank: int
    market_id: str
    title: str
    volume_24h: float
    yes_price: float
    no_price: float


class RunReport(BaseModel):
    """Summary of one run, returned by the trigger surfaces."""

    run_id: str
    state: RunState = RunState.FETCHING
    states: list[RunState] = Field(default_factory=list)
    started_at: int
    finished_at: int | None = None
    fetched: int = 0
    valid: int = 0
    rejected: dict[str, int] = Field(default_factory=dict)
    top: list[RankedEntry] = Field(default_factory=list)
    snapshots_written: int = 0
    entered: int = 0
    exited: int = 0
    events_written: int = 0
    swept: SweepCounts | None = None
    error: str | None = None
    failed_in: RunState | None = None

    @property
    def ok(self) -> bool:
        return self.state == RunState.DONE


def _ms_now() -> int:
    return int(time.time() * 1000)


class TopKRunner:
    """Executes the ranking pipeline against one DuckDB connection.

    Steps run strictly in order. Snapshotting of the outgoing generation and
    the diff both happen before the flag flip in replace_top_k.
    """

    def __init__(
        self,
        conn: DuckDBPyConnection,
        fetcher: Callable[[], list[dict[str, Any]]],
        k: int = 20,
        allow_empty_generation: bool = False,
        snapshot_days: float = 30,
        stale_market_hours: float = 24,
        event_days: float = 60,
        clock: Callable[[], int] = _ms_now,
    ):
        self.conn = conn
        self.fetcher = fetcher
        self.k = k
        self.allow_empty_generation = allow_empty_generation
        self.snapshot_days = snapshot_days
        self.stale_market_hours = stale_market_hours
        self.event_days = event_days
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        conn: DuckDBPyConnection,
        settings: Settings,
        transport: httpx.BaseTransport | None = None,
    ) -> TopKRunner:
        fetcher = partial(
            fetch_active_listings,
            base_url=settings.gamma_api_base,
            limit=settings.fetch_limit,
            timeout=settings.request_timeout_sec,
            user_agent=settings.user_agent,
            transport=transport,
        )
        return cls(
            conn,
            fetcher,
            k=settings.top_k,
            allow_empty_generation=settings.allow_empty_generation,
            snapshot_days=settings.snapshot_retention_days,
            stale_market_hours=settings.stale_market_hours,
            event_days=settings.event_retention_days,
        )

    def _enter(self, report: RunReport, state: RunState) -> None:
        report.state = state
        report.states.append(state)
        log.debug("run_state", state=state.value)

    def run(self) -> RunReport:
        """Run once. Fatal errors end in a FAILED report; the previous generation stays current."""
        if not _run_lock.acquire(blocking=False):
            raise RunInProgress("a ranking run is already in progress")
        try:
            now_ms = self.clock()
            report = RunReport(run_id=uuid.uuid4().hex[:12], started_at=now_ms)
            structlog.contextvars.bind_contextvars(run_id=report.run_id)
            try:
                log.info("run_started", k=self.k)
                self._run_steps(report, now_ms)
                self._enter(report, RunState.DONE)
                log.info(
                    "run_done",
                    fetched=report.fetched,
                    valid=report.valid,
                    ranked=len(report.top),
                    entered=report.entered,
                    exited=report.exited,
                )
            except PredrankError as e:
                self._fail(report, e)
            except Exception as e:
                self._fail(report, e)
                raise
            finally:
                report.finished_at = self.clock()
        finally:
            structlog.contextvars.unbind_contextvars("run_id")
            _run_lock.release()
        return report

    def _fail(self, report: RunReport, error: Exception) -> None:
        report.failed_in = report.state
        report.error = f"{type(error).__name__}: {error}"
        self._enter(report, RunState.FAILED)
        log.error("run_failed", failed_in=report.failed_in.value, error=report.error)

    def _run_steps(self, report: RunReport, now_ms: int) -> None:
        self._enter(report, RunState.FETCHING)
        raws = self.fetcher()
        report.fetched = len(raws)

        self._enter(report, RunState.VALIDATING)
        normalized = normalize(raws)
        report.valid = len(normalized.markets)
        report.rejected = normalized.rejected_by_reason
        if not normalized.markets:
            log.warning("no_valid_markets", fetched=report.fetched)

        self._enter(report, RunState.RANKING)
        top = select_top_k(normalized.markets, self.k)
        if not top and not self.allow_empty_generation:
            raise EmptyGeneration("no markets ranked; keeping the current top-K")
        report.top = [_ranked_entry(rank, m) for rank, m in enumerate(top, start=1)]

        self._enter(report, RunState.SNAPSHOTTING)
        try:
            old = current_top_k(self.conn)
        except duckdb.Error as e:
            raise PersistenceFailure(f"reading current top-K failed: {e}") from e
        if old:
            report.snapshots_written = snapshot(self.conn, old, now_ms)

        self._enter(report, RunState.DIFFING)
        events = detect(old, top, now_ms)
        report.entered = sum(1 for e in events if e.kind == EventKind.ENTERED)
        report.exited = sum(1 for e in events if e.kind == EventKind.EXITED)
        report.events_written = append_events(self.conn, events)
        log.info("trending_events", entered=report.entered, exited=report.exited)

        self._enter(report, RunState.UPDATING)
        replace_top_k(self.conn, top, now_ms)

        self._enter(report, RunState.SWEEPING)
        try:
            report.swept = sweep(
                self.conn,
                now_ms,
                snapshot_days=self.snapshot_days,
                stale_market_hours=self.stale_market_hours,
                event_days=self.event_days,
            )
        except duckdb.Error as e:
            raise PersistenceFailure(f"retention sweep failed: {e}") from e


def _ranked_entry(rank: int, m: CanonicalMarket) -> RankedEntry:
    return RankedEntry(
        rank=rank,
        market_id=m.market_id,
        title=m.title,
        volume_24h=m.volume_24h,
        yes_price=m.yes_price,
        no_price=m.no_price,
    )
