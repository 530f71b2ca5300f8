"""
Log stream harvesting.

Each stream is paged from its oldest event. Every page fetch is a job on
the shared ThrottledWorkQueue, so the number of concurrent requests to
the log provider is bounded no matter how many streams are harvested.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Optional

from .config import DefaultConfiguration, LogPatterns
from .errors import UpstreamFetchError
from .models import (
    FetchFailure,
    HarvestJob,
    LogEvent,
    LogStreamDescriptor,
    Page,
    RawLogLine,
)
from .paging import PagedFetcher, StopPredicate, cursor_exhausted
from .time_utils import format_log_date
from .work_queue import ThrottledWorkQueue

logger = logging.getLogger(__name__)

_API_REQUEST_RE = re.compile(LogPatterns.API_REQUEST_PATTERN)


def is_api_request(message: str) -> bool:
    """Check whether a log line is an HTTP GET/PUT/POST request worth keeping."""
    return (
        _API_REQUEST_RE.search(message) is not None
        and LogPatterns.CONNECTION_FAILURE_MARKER not in message
    )


class StopReason(Enum):
    EMPTY_PAGE = "empty page"
    REPEATED_CURSOR = "repeated cursor"
    LINE_CAP = "line cap reached"


@dataclass
class StreamState:
    """Per-stream pagination state threaded through each harvest step."""

    stream_name: str
    lines: list[RawLogLine] = field(default_factory=list)
    last_timestamp: Optional[int] = None
    pages: int = 0
    stop_reason: Optional[StopReason] = None


def stream_stop_policy(state: StreamState, max_lines: int) -> StopPredicate[LogEvent]:
    """Build the stop predicate for one stream.

    The predicate returns the StopReason that ends the stream, or None to
    keep paging. Rules apply in order: empty page, missing or repeated
    cursor, then the retained line cap. The stream fetcher pages on
    HarvestJob values, so the predicate sees the job just fetched.
    """

    def should_stop(
        page: Optional[Page[LogEvent]], job: HarvestJob
    ) -> Optional[StopReason]:
        if page is None or not page.items:
            return StopReason.EMPTY_PAGE
        if cursor_exhausted(page, job.cursor_token):
            return StopReason.REPEATED_CURSOR
        if len(state.lines) >= max_lines:
            return StopReason.LINE_CAP
        return None

    return should_stop


@dataclass
class StreamHarvest:
    stream_name: str
    lines: list[RawLogLine]
    oldest_marker: str
    pages: int
    stop_reason: Optional[StopReason]


@dataclass
class HarvestResult:
    """Lines retained per stream plus the per-stream diagnostics."""

    streams: dict[str, list[RawLogLine]] = field(default_factory=dict)
    oldest_markers: dict[str, str] = field(default_factory=dict)
    failures: list[FetchFailure] = field(default_factory=list)
    streams_listed: int = 0

    def all_lines(self) -> list[RawLogLine]:
        return [line for lines in self.streams.values() for line in lines]


class StreamHarvester:
    """Harvests HTTP request lines from every stream of a log group."""

    def __init__(
        self,
        log_provider: Any,
        queue: ThrottledWorkQueue,
        max_lines: int = DefaultConfiguration.DEFAULT_MAX_LINES,
    ):
        self.log_provider = log_provider
        self.queue = queue
        self.max_lines = max_lines

    async def list_streams(
        self, group_name: str, stream_prefix: Optional[str] = None
    ) -> list[LogStreamDescriptor]:
        """List streams for the group that have received at least one event."""
        streams = await asyncio.to_thread(
            self.log_provider.list_streams, group_name, stream_prefix
        )
        return [stream for stream in streams if stream.has_events]

    async def harvest(
        self, group_name: str, stream_prefix: Optional[str] = None
    ) -> HarvestResult:
        """Harvest all streams of the group, tolerating per-stream failures."""
        result = HarvestResult()

        try:
            streams = await self.list_streams(group_name, stream_prefix)
        except UpstreamFetchError as e:
            logger.warning("Could not list streams for %s: %s", group_name, e)
            result.failures.append(FetchFailure(group_name, str(e)))
            return result

        result.streams_listed = len(streams)
        logger.info("Harvesting %d streams from %s", len(streams), group_name)

        owners = [self.start_stream(group_name, stream.name) for stream in streams]
        settled = asyncio.gather(*owners, return_exceptions=True)
        await self.queue.run(settled)

        for stream, outcome in zip(streams, settled.result()):
            if isinstance(outcome, BaseException):
                result.failures.append(FetchFailure(stream.name, str(outcome)))
                continue
            result.oldest_markers[outcome.stream_name] = outcome.oldest_marker
            if outcome.lines:
                result.streams[outcome.stream_name] = outcome.lines

        return result

    def start_stream(
        self, group_name: str, stream_name: str
    ) -> "asyncio.Future[StreamHarvest]":
        """Submit the first page of a stream and return the stream's future."""
        owner: "asyncio.Future[StreamHarvest]" = (
            asyncio.get_running_loop().create_future()
        )
        state = StreamState(stream_name)
        fetcher = self._stream_fetcher(group_name, state)
        self.queue.submit(
            HarvestJob(stream_name),
            partial(self._step, fetcher, state, owner),
            owner,
        )
        return owner

    def _stream_fetcher(
        self, group_name: str, state: StreamState
    ) -> PagedFetcher[LogEvent]:
        def fetch(job: HarvestJob) -> Page[LogEvent]:
            return self.log_provider.get_events(
                group_name,
                state.stream_name,
                job.cursor_token,
                start_from_oldest=job.is_first_page,
            )

        return PagedFetcher(fetch, stream_stop_policy(state, self.max_lines))

    async def _step(
        self,
        fetcher: PagedFetcher[LogEvent],
        state: StreamState,
        owner: "asyncio.Future[StreamHarvest]",
        job: HarvestJob,
    ) -> None:
        page = await asyncio.to_thread(fetcher.fetch_page, job)

        state.pages += 1
        events = page.items if page is not None else []
        # Non-request lines are dropped here and never buffered
        state.lines.extend(
            RawLogLine(state.stream_name, event.message, event.timestamp_millis)
            for event in events
            if is_api_request(event.message)
        )
        if events:
            state.last_timestamp = events[-1].timestamp_millis

        reason = fetcher.should_stop(page, job)
        if reason is None:
            self.queue.submit(
                HarvestJob(state.stream_name, page.next_cursor, is_first_page=False),
                partial(self._step, fetcher, state, owner),
                owner,
            )
            return

        state.stop_reason = reason
        logger.debug(
            "Stream %s finished after %d pages (%s), %d lines kept",
            state.stream_name,
            state.pages,
            reason.value,
            len(state.lines),
        )
        if not owner.done():
            owner.set_result(
                StreamHarvest(
                    state.stream_name,
                    state.lines,
                    format_log_date(state.last_timestamp),
                    state.pages,
                    reason,
                )
            )

