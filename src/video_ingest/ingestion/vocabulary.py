"""
Label Vocabulary
================

Label discovery during ingestion and fixed-width one-hot encoding after it.

Two types model the two phases:
    - LabelVocabulary: growing; labels are added by concurrent workers
    - FrozenVocabulary: fixed; the only type that can encode

Freezing is one-way. Adding to a frozen LabelVocabulary raises
VocabularyFrozenError instead of silently changing the encoding width.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

import numpy as np

from video_ingest.errors import UnknownLabelError, VocabularyFrozenError


logger = logging.getLogger(__name__)


class LabelVocabulary:
    """
    Thread-safe, append-only label -> index mapping.

    Indices follow first-seen order and never change once assigned.

    Example:
        vocab = LabelVocabulary()
        vocab.add("hello")
        vocab.add("bye")
        vocab.add("hello")  # no-op

        frozen = vocab.freeze()
        frozen.one_hot("bye")  # array([0., 1.], dtype=float32)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._index: Dict[str, int] = {}
        self._frozen: Optional["FrozenVocabulary"] = None

    def add(self, label: str) -> int:
        """
        Register a label, returning its index.

        Idempotent: adding a known label returns the existing index.

        Raises:
            VocabularyFrozenError: If the vocabulary was frozen
        """
        with self._lock:
            if self._frozen is not None:
                raise VocabularyFrozenError(
                    f"cannot add {label!r}: vocabulary frozen at size {len(self._index)}"
                )
            index = self._index.get(label)
            if index is None:
                index = len(self._index)
                self._index[label] = index
                logger.debug(f"New label {label!r} -> {index}")
            return index

    def index_of(self, label: str) -> int:
        """
        Index of a known label.

        Raises:
            UnknownLabelError: If the label was never added
        """
        with self._lock:
            try:
                return self._index[label]
            except KeyError:
                raise UnknownLabelError(label)

    def size(self) -> int:
        """Current number of distinct labels."""
        with self._lock:
            return len(self._index)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, label: object) -> bool:
        with self._lock:
            return label in self._index

    @property
    def is_frozen(self) -> bool:
        return self._frozen is not None

    def freeze(self) -> "FrozenVocabulary":
        """
        Stop growth and return the encoding view.

        Calling freeze again returns the same frozen view.
        """
        with self._lock:
            if self._frozen is None:
                self._frozen = FrozenVocabulary(self._index)
                logger.info(f"Vocabulary frozen with {len(self._index)} labels")
            return self._frozen

    def to_dict(self) -> Dict[str, int]:
        """Snapshot of label -> index."""
        with self._lock:
            return dict(self._index)


class FrozenVocabulary:
    """
    Read-only vocabulary used for one-hot encoding.

    Attributes:
        labels: Labels in index order
    """

    def __init__(self, index: Dict[str, int]) -> None:
        self._index = dict(index)
        self.labels: List[str] = sorted(self._index, key=self._index.__getitem__)

    def size(self) -> int:
        return len(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def index_of(self, label: str) -> int:
        try:
            return self._index[label]
        except KeyError:
            raise UnknownLabelError(label)

    def one_hot(self, label: str) -> np.ndarray:
        """float32 vector of width size() with a 1 at index_of(label)."""
        vector = np.zeros(len(self._index), dtype=np.float32)
        vector[self.index_of(label)] = 1.0
        return vector

    def encode(self, labels: Iterable[str]) -> np.ndarray:
        """
        Stack one-hot vectors for a sequence of labels.

        Returns:
            float32 array (N, size())
        """
        indices = [self.index_of(label) for label in labels]
        matrix = np.zeros((len(indices), len(self._index)), dtype=np.float32)
        if indices:
            matrix[np.arange(len(indices)), indices] = 1.0
        return matrix

    def to_dict(self) -> Dict[str, int]:
        return dict(self._index)
