"""
Manifest Module
===============

Streaming manifest parsing.

    - ManifestReader: Lazy row iterator that feeds the ingestion queue
    - parse_record: Raw record -> ManifestRow
"""

from video_ingest.manifest.reader import ManifestReader, parse_record, parse_split


__all__ = [
    "ManifestReader",
    "parse_record",
    "parse_split",
]
