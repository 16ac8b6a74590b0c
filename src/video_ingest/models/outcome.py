"""
Item Outcomes
=============

Per-video result recorded by the ingestion queue.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ItemStatus(str, Enum):
    """Final status of one manifest row."""

    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """
    Result of processing one manifest row.

    Attributes:
        identifier: Video identifier
        status: SUCCEEDED or FAILED
        frame_count: Pairs appended to the store (0 on failure)
        error: Failure message, None on success
    """

    identifier: str
    status: ItemStatus
    frame_count: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ItemStatus.SUCCEEDED
