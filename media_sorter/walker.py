"""Source tree enumeration and media classification."""

import logging
import os
import queue
from pathlib import Path
from typing import Dict, Generator, Iterable, Optional, Pattern

from .models import Candidate, MediaKind, RunStats

logger = logging.getLogger(__name__)

# Put on a queue by its last producer; every consumer puts it back before exiting.
QUEUE_CLOSED = object()

EXTENSION_KINDS: Dict[str, MediaKind] = {
    **dict.fromkeys(('jpg', 'jpeg', 'png', 'heic', 'heif'), MediaKind.IMAGE),
    **dict.fromkeys(('tif', 'tiff'), MediaKind.TAGGED),
    **dict.fromkeys(('nef', 'rw2', 'cr2', 'crw', 'cr3', 'arw', 'dng',
                     'orf', 'raf', 'pef', 'srw'), MediaKind.RAW),
    **dict.fromkeys(('mov', 'mpg', 'mpeg', 'mp4', 'm4v', 'avi', 'mts', '3gp'), MediaKind.MOVIE),
}


def classify_media(path: Path) -> MediaKind:
    """
    Classify a file by its extension.

    Args:
        path: File path; only the suffix is looked at, case-insensitively

    Returns:
        MediaKind for the extension, UNCLASSIFIED when unknown
    """
    extension = Path(path).suffix.lower().lstrip('.')
    return EXTENSION_KINDS.get(extension, MediaKind.UNCLASSIFIED)


def close_queue(work_queue: queue.Queue) -> None:
    """Signal consumers that no more items will arrive."""
    work_queue.put(QUEUE_CLOSED)


class TreeWalker:
    """Walks a source tree and emits classified media candidates."""

    def __init__(
        self,
        root: Path,
        exclude: Optional[Pattern] = None,
        skip_dirs: Iterable[Path] = (),
        stats: Optional[RunStats] = None,
    ):
        """
        Initialize walker.

        Args:
            root: Directory to enumerate
            exclude: Pattern searched in lowercase paths; matches are dropped
            skip_dirs: Directories pruned from the walk (e.g. the destination root)
            stats: Run counters to record traversal errors in
        """
        self.root = Path(root)
        self.exclude = exclude
        self.skip_dirs = {os.path.abspath(d) for d in skip_dirs}
        self.stats = stats or RunStats()

    def check_root(self) -> None:
        """Raise if the root directory cannot be traversed."""
        if not self.root.exists():
            raise FileNotFoundError(f"Source directory does not exist: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"Source path is not a directory: {self.root}")
        with os.scandir(self.root):
            pass

    def _on_error(self, error: OSError) -> None:
        logger.warning(f"Skipping unreadable entry {getattr(error, 'filename', '')}: {error}")
        self.stats.record_traversal_error()

    def _is_excluded(self, lower_path: str) -> bool:
        return self.exclude is not None and self.exclude.search(lower_path) is not None

    def iter_candidates(self) -> Generator[Candidate, None, None]:
        """
        Recursively find media candidates under the root.

        Directories are never yielded. Excluded and unclassified files are
        dropped without error.

        Yields:
            Candidate for every classified file
        """
        for dirpath, dirnames, filenames in os.walk(str(self.root), onerror=self._on_error):
            if self.skip_dirs:
                dirnames[:] = [
                    name for name in dirnames
                    if os.path.abspath(os.path.join(dirpath, name)) not in self.skip_dirs
                ]

            for filename in filenames:
                path = os.path.join(dirpath, filename)
                lower_path = path.lower()
                if self._is_excluded(lower_path):
                    continue
                kind = classify_media(Path(lower_path))
                if kind is MediaKind.UNCLASSIFIED:
                    continue
                yield Candidate(Path(path), kind)

    def run(self, candidates: queue.Queue) -> None:
        """Put every candidate on the queue, closing it once the walk ends."""
        count = 0
        try:
            for candidate in self.iter_candidates():
                candidates.put(candidate)
                count += 1
        finally:
            close_queue(candidates)
            logger.info(f"Walk of {self.root} complete: {count:,} candidates")
