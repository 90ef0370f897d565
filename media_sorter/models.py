"""Data types passed between the stages of the sorting pipeline."""

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict


class MediaKind(Enum):
    """Classification of a file by its extension."""
    UNCLASSIFIED = "unclassified"
    IMAGE = "image"
    RAW = "raw"
    TAGGED = "tagged"
    MOVIE = "movie"


class SkipReason(Enum):
    """Why the decoder stage dropped a candidate."""
    OPEN_FAILED = "open_failed"
    STAT_FAILED = "stat_failed"
    METADATA_FAILED = "metadata_failed"
    DESTINATION_EXISTS = "destination_exists"
    DESTINATION_MISSING = "destination_missing"


class TransferOutcome(Enum):
    """What the executor stage did with a transfer request."""
    PERFORMED = "performed"
    SKIPPED_EXISTS = "skipped_exists"
    SKIPPED_DIFF_SIZE = "skipped_diff_size"
    SKIPPED_SAME_FILE = "skipped_same_file"
    SKIPPED_UNVERIFIED = "skipped_unverified"
    FAILED = "failed"


@dataclass(frozen=True)
class Candidate:
    """A classified file found by the walker, not yet dated."""
    path: Path
    kind: MediaKind


@dataclass(frozen=True)
class TransferRequest:
    """A resolved source/destination pair ready for the executor."""
    source: Path
    destination: Path
    captured: datetime
    date_source: str = "mtime"


@dataclass(frozen=True)
class DecodeSkip:
    """A candidate the decoder dropped, with the reason."""
    path: Path
    reason: SkipReason
    detail: str = ""


@dataclass
class RunStats:
    """Counters collected by all pipeline stages during one run."""
    dry_run: bool = False
    candidates: int = 0
    requests: int = 0
    traversal_errors: int = 0
    skips: Counter = field(default_factory=Counter)
    outcomes: Counter = field(default_factory=Counter)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_candidate(self) -> None:
        with self._lock:
            self.candidates += 1

    def record_request(self) -> None:
        with self._lock:
            self.requests += 1

    def record_skip(self, reason: SkipReason) -> None:
        with self._lock:
            self.skips[reason] += 1

    def record_outcome(self, outcome: TransferOutcome) -> None:
        with self._lock:
            self.outcomes[outcome] += 1

    def record_traversal_error(self) -> None:
        with self._lock:
            self.traversal_errors += 1

    @property
    def performed(self) -> int:
        return self.outcomes[TransferOutcome.PERFORMED]

    @property
    def failed(self) -> int:
        return self.outcomes[TransferOutcome.FAILED]

    @property
    def skipped(self) -> int:
        """Total skips across both the decoder and executor stages."""
        executor_skips = sum(
            count for outcome, count in self.outcomes.items()
            if outcome not in (TransferOutcome.PERFORMED, TransferOutcome.FAILED)
        )
        return sum(self.skips.values()) + executor_skips

    def to_dict(self) -> Dict[str, object]:
        """Plain dictionary view used for summary logging."""
        with self._lock:
            return {
                'dry_run': self.dry_run,
                'candidates': self.candidates,
                'requests': self.requests,
                'traversal_errors': self.traversal_errors,
                'skips': {reason.value: count for reason, count in self.skips.items()},
                'outcomes': {outcome.value: count for outcome, count in self.outcomes.items()},
            }
