"""Run coordination: wires the walker, decoder and executor pools."""

import logging
import queue
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import List, Optional

from tqdm import tqdm

from .config import RunConfig, TransferMode
from .decoder import MetadataDecoder
from .executor import TransferExecutor
from .models import RunStats
from .reporter import ActionReporter
from .utils import GIGABYTE, format_bytes, get_available_space
from .walker import QUEUE_CLOSED, TreeWalker, close_queue

logger = logging.getLogger(__name__)


class InsufficientSpaceError(RuntimeError):
    """Raised when the destination has less free space than configured."""


def _discard_pending(work_queue: queue.Queue, producers: List[Future]) -> None:
    """Drop queued work after a worker failure so the remaining producers can finish."""
    while not all(future.done() for future in producers):
        try:
            item = work_queue.get(timeout=0.1)
        except queue.Empty:
            continue
        if item is QUEUE_CLOSED:
            work_queue.put(item)
            wait(producers)
            return


class MediaSorter:
    """Sorts media files from a source tree into a date-based destination tree."""

    def __init__(
        self,
        config: RunConfig,
        reporter: Optional[ActionReporter] = None,
        progress: bool = False,
    ):
        """
        Initialize sorter.

        Args:
            config: Immutable run configuration shared by all stages
            reporter: Console line sink; defaults to click.echo
            progress: Show a tqdm progress bar of decoded files
        """
        self.config = config
        self.reporter = reporter or ActionReporter()
        self.progress = progress

    def _check_free_space(self) -> None:
        """Abort a live copy run when the destination is short on space."""
        if self.config.mode is not TransferMode.COPY or self.config.dry_run:
            return
        if not self.config.min_free_space_gb:
            return

        needed = self.config.min_free_space_gb * GIGABYTE
        available = get_available_space(self.config.dest_root)
        if available < needed:
            raise InsufficientSpaceError(
                f"Insufficient space in {self.config.dest_root}: "
                f"need {format_bytes(needed)}, have {format_bytes(available)}"
            )
        logger.info(f"Space check OK: need {format_bytes(needed)}, have {format_bytes(available)}")

    def run(self) -> RunStats:
        """
        Sort the source tree, blocking until every stage has drained.

        Returns:
            Counters for the run

        Raises:
            FileNotFoundError, NotADirectoryError, PermissionError: If the source
                root cannot be traversed
            InsufficientSpaceError: If the free-space safety check fails
            Exception: Anything escaping a walker, decoder or executor worker
        """
        config = self.config
        stats = RunStats(dry_run=config.dry_run)
        walker = TreeWalker(config.source_root, config.exclude, skip_dirs=[config.dest_root], stats=stats)
        walker.check_root()
        self._check_free_space()

        logger.info(
            f"{'DRY RUN: ' if config.dry_run else ''}Sorting {config.source_root} -> {config.dest_root} "
            f"(mode={config.mode.value}, decoders={config.decoder_workers}, "
            f"executors={config.executor_count})"
        )

        candidates: queue.Queue = queue.Queue(maxsize=config.candidate_buffer)
        requests: queue.Queue = queue.Queue(maxsize=config.request_buffer)
        decoder = MetadataDecoder(config)
        executor = TransferExecutor(config, self.reporter)

        progress_bar = tqdm(desc="Sorting", unit="files") if self.progress else None
        self.reporter.attach_progress(progress_bar)
        pool_size = 1 + config.decoder_workers + config.executor_count
        try:
            with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="media-sorter") as pool:
                producers: List[Future] = [pool.submit(walker.run, candidates)]
                producers.extend(
                    pool.submit(decoder.work, candidates, requests, stats, progress_bar)
                    for _ in range(config.decoder_workers)
                )
                consumers: List[Future] = [
                    pool.submit(executor.work, requests, stats)
                    for _ in range(config.executor_count)
                ]

                try:
                    done, _ = wait(producers, return_when=FIRST_EXCEPTION)
                    if any(future.exception() is not None for future in done):
                        _discard_pending(candidates, producers)
                    for future in producers:
                        future.result()
                finally:
                    # Executors drain and exit even when a producer failed.
                    close_queue(requests)
                for future in consumers:
                    future.result()
        finally:
            self.reporter.attach_progress(None)
            if progress_bar is not None:
                progress_bar.close()

        logger.info(
            f"{'DRY RUN: ' if config.dry_run else ''}Sort complete: "
            f"{stats.candidates:,} files, {stats.performed:,} {config.mode.value} operations, "
            f"{stats.skipped:,} skipped, {stats.failed:,} failed"
        )
        logger.debug(f"Run statistics: {stats.to_dict()}")
        return stats
