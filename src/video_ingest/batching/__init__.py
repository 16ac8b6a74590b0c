"""
Batching Module
===============

Post-drain batch assembly and trainer handoff.
"""

from video_ingest.batching.assembler import BatchAssembler


__all__ = [
    "BatchAssembler",
]
