"""
Media Sorting Tool

Sorts photos, raw camera files and movies from a source tree into
date-named folders, using EXIF capture dates with a modification-time
fallback, through a concurrent walk/decode/transfer pipeline.
"""

__version__ = "1.0.0"
__author__ = "Homelab Team"

from .config import Config, RunConfig, TransferMode
from .models import (
    Candidate,
    DecodeSkip,
    MediaKind,
    RunStats,
    SkipReason,
    TransferOutcome,
    TransferRequest,
)
from .walker import TreeWalker, classify_media
from .decoder import MetadataDecoder, destination_for
from .executor import TransferExecutor
from .coordinator import InsufficientSpaceError, MediaSorter
from .reporter import ActionReporter

__all__ = [
    'Config',
    'RunConfig',
    'TransferMode',
    'Candidate',
    'DecodeSkip',
    'MediaKind',
    'RunStats',
    'SkipReason',
    'TransferOutcome',
    'TransferRequest',
    'TreeWalker',
    'classify_media',
    'MetadataDecoder',
    'destination_for',
    'TransferExecutor',
    'InsufficientSpaceError',
    'MediaSorter',
    'ActionReporter',
]
