"""Capture date resolution and destination planning."""

import logging
import os
import queue
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .config import RunConfig, TransferMode
from .metadata import MetadataDecodeError, capture_date_from_tags, read_exif_tags
from .models import Candidate, DecodeSkip, MediaKind, RunStats, SkipReason, TransferRequest
from .walker import QUEUE_CLOSED

logger = logging.getLogger(__name__)


def folder_format_for(config: RunConfig, kind: MediaKind) -> str:
    """Pick the folder template for a media kind."""
    if kind is MediaKind.RAW:
        return config.raw_format
    if kind is MediaKind.MOVIE:
        return config.movie_format
    return config.default_format


def destination_for(config: RunConfig, source: Path, captured: datetime, kind: MediaKind) -> Path:
    """
    Compute where a file belongs in the destination tree.

    Args:
        config: Run configuration holding the destination root and templates
        source: Source file path; its basename is kept
        captured: Resolved capture date
        kind: Media kind selecting the template

    Returns:
        dest_root / formatted folder / basename
    """
    folder = captured.strftime(folder_format_for(config, kind))
    return config.dest_root / folder / source.name


class MetadataDecoder:
    """Dates candidates and turns them into transfer requests."""

    def __init__(self, config: RunConfig):
        self.config = config

    def decode(self, candidate: Candidate) -> Union[TransferRequest, DecodeSkip]:
        """
        Resolve the capture date and destination of one candidate.

        The modification time is used unless an EXIF date field parses.
        The destination check here is advisory only; the executor repeats it.

        Args:
            candidate: File found by the walker

        Returns:
            TransferRequest, or DecodeSkip describing why the file was dropped
        """
        path = candidate.path
        try:
            fh = open(path, 'rb')
        except OSError as e:
            return DecodeSkip(path, SkipReason.OPEN_FAILED, str(e))

        with fh:
            try:
                source_stat = os.fstat(fh.fileno())
            except OSError as e:
                return DecodeSkip(path, SkipReason.STAT_FAILED, str(e))

            captured = datetime.fromtimestamp(source_stat.st_mtime)
            date_source = "mtime"
            try:
                tags = read_exif_tags(fh)
            except MetadataDecodeError as e:
                if self.config.strict_metadata:
                    return DecodeSkip(path, SkipReason.METADATA_FAILED, str(e))
                logger.debug(f"{path}: {e}, using modification time")
            else:
                found = capture_date_from_tags(tags)
                if found:
                    date_source, captured = "exif", found[1]
                    logger.debug(f"{path}: dated from {found[0]}")

        destination = destination_for(self.config, path, captured, candidate.kind)
        skip = self._prefilter(path, destination, source_stat.st_size)
        if skip:
            return skip
        return TransferRequest(path, destination, captured, date_source)

    def _prefilter(self, source: Path, destination: Path, source_size: int) -> Optional[DecodeSkip]:
        """Drop requests the executor would certainly skip."""
        try:
            dest_size: Optional[int] = os.stat(destination).st_size
        except OSError:
            dest_size = None

        if self.config.mode is TransferMode.DELETE:
            if dest_size is None:
                return DecodeSkip(source, SkipReason.DESTINATION_MISSING, str(destination))
            return None

        if dest_size is None:
            return None
        if self.config.allow_larger and source_size > dest_size:
            return None
        return DecodeSkip(source, SkipReason.DESTINATION_EXISTS, str(destination))

    def work(
        self,
        candidates: queue.Queue,
        requests: queue.Queue,
        stats: RunStats,
        progress=None,
    ) -> None:
        """Decode candidates until the candidate queue is closed."""
        while True:
            candidate = candidates.get()
            if candidate is QUEUE_CLOSED:
                candidates.put(QUEUE_CLOSED)
                return

            stats.record_candidate()
            try:
                result = self.decode(candidate)
            except Exception:
                logger.exception(f"Unexpected error decoding {candidate.path}")
                result = None

            if isinstance(result, TransferRequest):
                stats.record_request()
                requests.put(result)
            elif isinstance(result, DecodeSkip):
                logger.debug(f"Skip {result.path}: {result.reason.value} {result.detail}")
                stats.record_skip(result.reason)

            if progress is not None:
                progress.update(1)
