"""ScoreMerger: renders play blocks independently and merges them into one timeline."""

from __future__ import annotations

import heapq
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from operator import attrgetter
from typing import Iterable, Sequence

from barline.score_models import PerformanceEvent, PlayBlock, TimedToken
from barline.track_renderer import TrackRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderJob:
    """Everything needed to render one play block, with no shared state."""

    renderer: TrackRenderer
    block: PlayBlock
    timed_bars: tuple[tuple[TimedToken, ...], ...]

    def run(self) -> tuple[PerformanceEvent, ...]:
        return self.renderer.render(self.block, self.timed_bars)


class ScoreMerger:
    """
    Combines per-block event sequences into one time-ordered sequence.

    Play blocks are independent timelines: they all start at 0, may end at
    different times, and are never padded or truncated. Events starting at
    the same instant keep play-block declaration order, then their order
    within the block.
    """

    def render_all(
        self,
        jobs: Sequence[RenderJob],
        max_workers: int | None = None,
    ) -> list[tuple[PerformanceEvent, ...]]:
        """
        Render every job and wait for all of them.

        Blocks share nothing mutable, so with ``max_workers`` above 1 they run
        on a thread pool. Results come back in job order either way, and the
        first failure propagates after the pool has shut down.

        Args:
            jobs:        One job per play block, in declaration order.
            max_workers: Thread count; ``None`` or 1 renders sequentially.

        Returns:
            One event sequence per job, in job order.
        """
        if not max_workers or max_workers <= 1 or len(jobs) <= 1:
            return [job.run() for job in jobs]

        logger.debug("Rendering %d play block(s) on %d worker(s)", len(jobs), max_workers)
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="barline-render") as pool:
            futures = [pool.submit(job.run) for job in jobs]
            return [future.result() for future in futures]

    def merge(self, sequences: Iterable[Sequence[PerformanceEvent]]) -> tuple[PerformanceEvent, ...]:
        """
        Stable merge of already-sorted event sequences on start time.

        ``heapq.merge`` takes equal keys from earlier iterables first, which
        gives the declaration-order tie-break.
        """
        merged = tuple(heapq.merge(*sequences, key=attrgetter("start")))
        logger.debug("Merged %d event(s)", len(merged))
        return merged
