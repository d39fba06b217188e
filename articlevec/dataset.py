"""
Labeled dataset with exact-duplicate suppression.

A (vector, label) pair is dropped if an identical pair (same values at every
position, same label) was added before. Lookup goes through a SHA-256
fingerprint of the float64 bytes plus the label; a fingerprint hit is confirmed
by comparing those bytes, so NaN matches NaN. First-occurrence order is kept.
"""
from __future__ import annotations

import hashlib
import logging
from collections import Counter
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np

log = logging.getLogger(__name__)


def fingerprint(values: Sequence[float], label: str) -> str:
    h = hashlib.sha256()
    h.update(np.asarray(values, dtype=np.float64).tobytes())
    h.update(b"\x00")
    h.update(label.encode("utf-8"))
    return h.hexdigest()


def same_values(a: Sequence[float], b: Sequence[float]) -> bool:
    return np.asarray(a, dtype=np.float64).tobytes() == np.asarray(b, dtype=np.float64).tobytes()


class LabeledDataset:
    def __init__(self):
        self.values: List[List[float]] = []
        self.class_values: List[str] = []
        self.duplicates = 0
        self._index: Dict[str, List[int]] = {}

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Tuple[List[float], str]]:
        return iter(zip(self.values, self.class_values))

    def add(self, values: Sequence[float], class_value: str) -> bool:
        """Append unless an identical pair is already present. Returns True if added."""
        values = [float(v) for v in values]
        key = fingerprint(values, class_value)
        for i in self._index.get(key, []):
            if same_values(self.values[i], values) and self.class_values[i] == class_value:
                self.duplicates += 1
                log.debug(f"dropping duplicate vector for label {class_value!r} (same as #{i})")
                return False
        self._index.setdefault(key, []).append(len(self.values))
        self.values.append(values)
        self.class_values.append(class_value)
        return True

    def replace(self, values: List[List[float]], class_values: List[str]) -> None:
        """Swap in new parallel lists (e.g. after balancing)."""
        if len(values) != len(class_values):
            raise ValueError(f"{len(values)} vectors but {len(class_values)} labels")
        self.values = values
        self.class_values = class_values
        self.rebuild_index()

    def rebuild_index(self) -> None:
        self._index = {}
        for i, (v, c) in enumerate(zip(self.values, self.class_values)):
            self._index.setdefault(fingerprint(v, c), []).append(i)

    def label_counts(self) -> Dict[str, int]:
        return dict(Counter(self.class_values))

