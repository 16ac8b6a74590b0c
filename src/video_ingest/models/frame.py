"""
Frame Models
============

A decoded frame paired with the label of the video it came from.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, slots=True)
class FramePair:
    """
    Decoded frame and its label.

    Attributes:
        frame: RGB image (H, W, 3) at the pipeline output resolution
        label: Trimmed label text of the source video
    """

    frame: np.ndarray
    label: str

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        return f"FramePair(shape={self.frame.shape}, label={self.label!r})"
