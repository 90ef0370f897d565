"""Console reporting for media sorting."""

import threading
import logging
from typing import Callable, Optional

import click
from tqdm import tqdm

from .models import RunStats, SkipReason, TransferOutcome

logger = logging.getLogger(__name__)


class ActionReporter:
    """Writes one console line per planned or executed filesystem action.

    Lines look like shell commands (``mkdir -p``, ``cp``, ``mv``, ``rm``) plus
    ``diff`` for size mismatches, and are the same in dry-run and live runs.
    """

    def __init__(self, write: Optional[Callable[[str], None]] = None):
        """
        Initialize reporter.

        Args:
            write: Line sink; defaults to click.echo
        """
        self._write = write or click.echo
        self._lock = threading.Lock()
        self._progress: Optional[tqdm] = None

    def attach_progress(self, progress: Optional[tqdm]) -> None:
        """Route lines through tqdm.write while a progress bar is shown."""
        self._progress = progress

    def line(self, text: str) -> None:
        with self._lock:
            if self._progress is not None:
                tqdm.write(text)
            else:
                self._write(text)

    def mkdir(self, directory) -> None:
        self.line(f"mkdir -p {directory}")

    def copy(self, source, destination) -> None:
        self.line(f"cp {source} {destination}")

    def move(self, source, destination) -> None:
        self.line(f"mv {source} {destination}")

    def remove(self, source) -> None:
        self.line(f"rm {source}")

    def diff(self, source, destination) -> None:
        self.line(f"diff {source} {destination}")


def generate_summary_report(stats: RunStats) -> str:
    """
    Generate human-readable summary of a run.

    Args:
        stats: Counters returned by MediaSorter.run()

    Returns:
        Formatted multi-line summary
    """
    report = []
    report.append("=" * 50)
    report.append("MEDIA SORT SUMMARY")
    report.append("=" * 50)
    report.append(f"Mode: {'DRY RUN' if stats.dry_run else 'LIVE RUN'}")
    report.append(f"• Media files found: {stats.candidates:,}")
    report.append(f"• Transfers requested: {stats.requests:,}")
    report.append(f"• Transfers performed: {stats.performed:,}")
    report.append(f"• Skipped: {stats.skipped:,}")
    report.append(f"• Failed: {stats.failed:,}")

    skip_lines = [
        f"    {reason.value}: {stats.skips[reason]:,}"
        for reason in SkipReason if stats.skips[reason]
    ]
    skip_lines += [
        f"    {outcome.value}: {stats.outcomes[outcome]:,}"
        for outcome in TransferOutcome
        if outcome not in (TransferOutcome.PERFORMED, TransferOutcome.FAILED) and stats.outcomes[outcome]
    ]
    if skip_lines:
        report.append("• Skip reasons:")
        report.extend(skip_lines)

    if stats.traversal_errors:
        report.append(f"• Unreadable entries: {stats.traversal_errors:,}")
    report.append("=" * 50)
    return "\n".join(report)
