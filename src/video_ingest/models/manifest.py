"""
Manifest Models
===============

Typed manifest rows produced by the manifest reader.

Design Rules:
    - Rows are immutable and consumed exactly once by a video worker
    - Declared dimensions are kept as raw text; the worker validates them
      so a bad dimension fails the item, not the manifest stream
"""

from dataclasses import dataclass
from enum import Enum


class Split(str, Enum):
    """Dataset split a video belongs to."""

    TRAIN = "train"
    TEST = "test"


@dataclass(frozen=True, slots=True)
class ManifestRow:
    """
    One video listed in the manifest.

    Attributes:
        identifier: Video identifier (file stem)
        label: Raw label text, may be empty or padded
        height: Declared height as written in the manifest
        width: Declared width as written in the manifest
        split: Train or test
        line_number: Source line, for log messages
    """

    identifier: str
    label: str
    height: str
    width: str
    split: Split
    line_number: int = 0
