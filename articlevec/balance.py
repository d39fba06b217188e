"""
Class balancing for training sets.

Undersampling draws every class down to the size of the smallest one;
oversampling repeats random members of every class up to the size of the
largest one. Draws use a seeded numpy Generator, so a run is reproducible.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Protocol

import numpy as np

log = logging.getLogger(__name__)


class Balancer(Protocol):
    def balance_instances(self, values: List[List[float]], class_values: List[str]) -> None:
        ...


class DatasetBalancer:
    def __init__(self, oversample: bool = False, undersample: bool = True, seed: int = 42):
        self.oversample = oversample
        self.undersample = undersample
        self.seed = seed

    def balance_instances(self, values: List[List[float]], class_values: List[str]) -> None:
        """Rebalance both parallel lists in place."""
        if len(values) != len(class_values):
            raise ValueError(f"{len(values)} vectors but {len(class_values)} labels")
        if not values or not (self.oversample or self.undersample):
            return

        by_class: Dict[str, List[int]] = defaultdict(list)
        for i, c in enumerate(class_values):
            by_class[c].append(i)
        sizes = {c: len(ix) for c, ix in by_class.items()}
        rng = np.random.default_rng(self.seed)

        keep: List[int] = []
        if self.undersample:
            target = min(sizes.values())
            for c in sorted(by_class):
                ix = by_class[c]
                if len(ix) > target:
                    ix = sorted(rng.choice(ix, size=target, replace=False).tolist())
                keep.extend(ix)
            keep.sort()
        else:
            keep = list(range(len(values)))

        extra: List[int] = []
        if self.oversample:
            kept_sizes: Dict[str, int] = defaultdict(int)
            for i in keep:
                kept_sizes[class_values[i]] += 1
            target = max(kept_sizes.values())
            for c in sorted(by_class):
                missing = target - kept_sizes[c]
                if missing > 0:
                    extra.extend(rng.choice(by_class[c], size=missing, replace=True).tolist())

        new_values = [values[i] for i in keep] + [list(values[i]) for i in extra]
        new_classes = [class_values[i] for i in keep] + [class_values[i] for i in extra]
        log.info(f"Balanced {sizes} -> {len(new_values)} instances")
        values[:] = new_values
        class_values[:] = new_classes
