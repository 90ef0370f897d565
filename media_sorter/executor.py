"""Copy, move and duplicate removal with pre-mutation re-validation."""

import logging
import os
import queue
from typing import Optional

from .config import RunConfig, TransferMode
from .models import RunStats, TransferOutcome, TransferRequest
from .reporter import ActionReporter
from .utils import ensure_directory, sync_copy_file
from .walker import QUEUE_CLOSED

logger = logging.getLogger(__name__)


class TransferExecutor:
    """Performs the configured filesystem operation for each transfer request."""

    def __init__(self, config: RunConfig, reporter: Optional[ActionReporter] = None):
        """
        Initialize executor.

        Args:
            config: Run configuration (mode, dry-run, allow-larger)
            reporter: Console line sink for planned actions
        """
        self.config = config
        self.reporter = reporter or ActionReporter()
        self._operations = {
            TransferMode.COPY: self.copy,
            TransferMode.MOVE: self.move,
            TransferMode.DELETE: self.delete_duplicate,
        }

    @property
    def dry_run(self) -> bool:
        return self.config.dry_run

    def execute(self, request: TransferRequest) -> TransferOutcome:
        """Run the configured operation for one request; never raises."""
        operation = self._operations[self.config.mode]
        try:
            return operation(request)
        except Exception:
            logger.exception(f"Unexpected error handling {request.source}")
            return TransferOutcome.FAILED

    def _revalidate(self, request: TransferRequest) -> Optional[TransferOutcome]:
        """
        Check the destination again right before mutating.

        Returns:
            None if the transfer may proceed, otherwise the skip outcome
        """
        try:
            dest_stat = os.stat(request.destination)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug(f"Cannot stat {request.destination}, skipping: {e}")
            return TransferOutcome.SKIPPED_UNVERIFIED

        try:
            source_size = os.stat(request.source).st_size
        except OSError:
            return TransferOutcome.SKIPPED_EXISTS

        if source_size > dest_stat.st_size:
            if self.config.allow_larger:
                logger.debug(f"Overwriting smaller {request.destination} ({dest_stat.st_size} < {source_size})")
                return None
            self.reporter.diff(request.source, request.destination)
            return TransferOutcome.SKIPPED_DIFF_SIZE
        return TransferOutcome.SKIPPED_EXISTS

    def _prepare_directory(self, request: TransferRequest) -> bool:
        """Report and (unless dry-run) create the destination directory."""
        dest_dir = request.destination.parent
        if dest_dir.is_dir():
            return True
        self.reporter.mkdir(dest_dir)
        if self.dry_run:
            return True
        return ensure_directory(dest_dir)

    def copy(self, request: TransferRequest) -> TransferOutcome:
        skip = self._revalidate(request)
        if skip:
            return skip
        if not self._prepare_directory(request):
            return TransferOutcome.FAILED

        self.reporter.copy(request.source, request.destination)
        if self.dry_run:
            return TransferOutcome.PERFORMED
        try:
            sync_copy_file(request.source, request.destination)
        except OSError as e:
            logger.error(f"Failed to copy {request.source} -> {request.destination}: {e}")
            return TransferOutcome.FAILED
        return TransferOutcome.PERFORMED

    def move(self, request: TransferRequest) -> TransferOutcome:
        """Rename source onto destination; there is no cross-volume copy fallback."""
        skip = self._revalidate(request)
        if skip:
            return skip
        if not self._prepare_directory(request):
            return TransferOutcome.FAILED

        self.reporter.move(request.source, request.destination)
        if self.dry_run:
            return TransferOutcome.PERFORMED
        try:
            os.replace(request.source, request.destination)
        except OSError as e:
            logger.error(f"Failed to move {request.source} -> {request.destination}: {e}")
            return TransferOutcome.FAILED
        return TransferOutcome.PERFORMED

    def delete_duplicate(self, request: TransferRequest) -> TransferOutcome:
        """
        Remove the source when an equal-sized copy already sits at the destination.

        Nothing is removed if either file is missing, both paths are the same
        underlying file, or the sizes differ.
        """
        try:
            dest_stat = os.stat(request.destination)
            source_stat = os.stat(request.source)
        except OSError as e:
            logger.debug(f"Not removing {request.source}: {e}")
            return TransferOutcome.SKIPPED_UNVERIFIED

        if os.path.samestat(source_stat, dest_stat):
            logger.debug(f"Not removing {request.source}: same file as {request.destination}")
            return TransferOutcome.SKIPPED_SAME_FILE
        if source_stat.st_size != dest_stat.st_size:
            logger.debug(f"Not removing {request.source}: size differs from {request.destination}")
            return TransferOutcome.SKIPPED_DIFF_SIZE

        self.reporter.remove(request.source)
        if self.dry_run:
            return TransferOutcome.PERFORMED
        try:
            os.remove(request.source)
        except OSError as e:
            logger.error(f"Failed to remove {request.source}: {e}")
            return TransferOutcome.FAILED
        return TransferOutcome.PERFORMED

    def work(self, requests: queue.Queue, stats: RunStats) -> None:
        """Execute requests until the request queue is closed."""
        while True:
            request = requests.get()
            if request is QUEUE_CLOSED:
                requests.put(QUEUE_CLOSED)
                return
            stats.record_outcome(self.execute(request))
