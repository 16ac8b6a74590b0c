"""
Manifest Reader
===============

Streams the manifest row by row and pushes each row into the ingestion queue.

This module provides:
    - parse_record: Turn one raw record into a ManifestRow
    - ManifestReader: Lazy row iterator + queue feeder

Design Rules:
    - Never loads the whole manifest into memory
    - A malformed record is logged and skipped; the stream continues
    - Undecodable bytes and csv parse errors are malformed records too
    - Does NOT wait for rows to be processed, only for queue backpressure
"""

import asyncio
import csv
import logging
from pathlib import Path
from typing import Iterator, Mapping, Optional, Protocol

from video_ingest.config import ManifestConfig
from video_ingest.errors import ManifestRowError, ManifestSourceError
from video_ingest.models.manifest import ManifestRow, Split


logger = logging.getLogger(__name__)


_TRAIN_MARKERS = {"true", "1", "yes", "train"}
_TEST_MARKERS = {"false", "0", "no", "test"}

# Inserted by the decoder for bytes that are not valid in the manifest encoding
_REPLACEMENT_CHAR = "\ufffd"


class RowSink(Protocol):
    """Anything rows can be submitted to (the ingestion queue)."""

    async def submit(self, row: ManifestRow) -> None:
        ...


def parse_split(value: Optional[str]) -> Split:
    """
    Interpret a split marker.

    Raises:
        ValueError: If the marker is neither a train nor a test value
    """
    marker = (value or "").strip().lower()
    if marker in _TRAIN_MARKERS:
        return Split.TRAIN
    if marker in _TEST_MARKERS:
        return Split.TEST
    raise ValueError(f"unrecognised split marker {value!r}")


def parse_record(
    record: Mapping[str, Optional[str]],
    columns: ManifestConfig,
    line_number: int = 0,
) -> ManifestRow:
    """
    Build a ManifestRow from one raw manifest record.

    Dimensions are passed through as text; label text is kept untrimmed.

    Args:
        record: Column name -> raw value
        columns: Column layout
        line_number: Source line for error messages

    Returns:
        ManifestRow

    Raises:
        ManifestRowError: On undecodable text, a missing identifier, a missing
            column or a bad split
    """
    if any(
        isinstance(value, str) and _REPLACEMENT_CHAR in value
        for value in record.values()
    ):
        raise ManifestRowError("row contains undecodable bytes", line_number)

    identifier = (record.get(columns.id_column) or "").strip()
    if not identifier:
        raise ManifestRowError("missing video identifier", line_number)

    missing = [
        name
        for name in (columns.height_column, columns.width_column, columns.split_column)
        if record.get(name) is None
    ]
    if missing:
        raise ManifestRowError(
            f"{identifier}: missing fields {', '.join(missing)}", line_number
        )

    try:
        split = parse_split(record.get(columns.split_column))
    except ValueError as e:
        raise ManifestRowError(f"{identifier}: {e}", line_number)

    return ManifestRow(
        identifier=identifier,
        label=record.get(columns.label_column) or "",
        height=record[columns.height_column] or "",
        width=record[columns.width_column] or "",
        split=split,
        line_number=line_number,
    )


class ManifestReader:
    """
    Lazy reader over a delimited manifest file.

    Attributes:
        path: Manifest file
        rows_read: Rows successfully parsed so far
        rows_skipped: Malformed rows skipped so far

    Example:
        reader = ManifestReader("annotations.csv", settings.manifest)

        for row in reader.rows():
            print(row.identifier)

        # or push straight into the ingestion queue
        await reader.feed(queue)
    """

    def __init__(self, path: str, columns: Optional[ManifestConfig] = None) -> None:
        self.path = Path(path)
        self.columns = columns or ManifestConfig()
        self.rows_read: int = 0
        self.rows_skipped: int = 0

    def rows(self) -> Iterator[ManifestRow]:
        """
        Yield manifest rows in source order.

        Raises:
            ManifestSourceError: If the file can't be opened or has no
                identifier column
        """
        try:
            handle = open(
                self.path,
                "r",
                newline="",
                encoding=self.columns.encoding,
                errors="replace",
            )
        except OSError as e:
            raise ManifestSourceError(f"Cannot open manifest {self.path}: {e}")

        with handle:
            reader = csv.DictReader(handle, delimiter=self.columns.delimiter)
            try:
                fieldnames = reader.fieldnames or []
            except csv.Error as e:
                raise ManifestSourceError(f"Cannot parse manifest header in {self.path}: {e}")
            if self.columns.id_column not in fieldnames:
                raise ManifestSourceError(
                    f"Manifest {self.path} has no '{self.columns.id_column}' column "
                    f"(found: {fieldnames})"
                )

            while True:
                try:
                    record = next(reader)
                except StopIteration:
                    break
                except csv.Error as e:
                    self.rows_skipped += 1
                    logger.warning(f"Skipping manifest row: line {reader.line_num}: {e}")
                    continue

                line_number = reader.line_num
                try:
                    row = parse_record(record, self.columns, line_number)
                except ManifestRowError as e:
                    self.rows_skipped += 1
                    logger.warning(f"Skipping manifest row: {e}")
                    continue

                self.rows_read += 1
                logger.debug(f"Read manifest row {row.identifier} (line {line_number})")
                yield row

    async def feed(self, sink: RowSink) -> int:
        """
        Push every row into the sink.

        Yields control after each row so workers can start while the
        manifest is still being read.

        Returns:
            Number of rows submitted
        """
        submitted = 0
        for row in self.rows():
            await sink.submit(row)
            submitted += 1
            await asyncio.sleep(0)

        logger.info(
            f"All manifest rows submitted: {submitted} queued, "
            f"{self.rows_skipped} skipped"
        )
        return submitted

    def metrics(self) -> dict:
        """Reader counters for observability."""
        return {
            "rows_read": self.rows_read,
            "rows_skipped": self.rows_skipped,
        }
