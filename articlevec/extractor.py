"""
Feature extraction over a routed corpus
---------------------------------------
Two passes over the same document directory, each with its own collection
reader and annotation engine:

  pass 1  candidate discovery: every labeled document updates the candidate
          features; afterwards the feature set fixes the ordered name list
  pass 2  extraction: every labeled document yields a normalized vector
          aligned to that list; duplicates are dropped on insertion

Documents the target class does not label are skipped in both passes.
The training set is balanced, then written as ARFF.

Usage:
  articlevec-extract VERACITY data/routed data/features \
    [--feature-config my-features.json] [--normalization-config my-norm.json]
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .arff import FeatureFileWriter
from .balance import Balancer, DatasetBalancer
from .config import load_feature_config, load_normalization_config
from .dataset import LabeledDataset
from .engine import AnalyzedDocument, AnnotationEngine, CollectionReader, RegexAnnotationEngine
from .errors import ArticleVecError, PipelineError
from .export import ExportSummary, export
from .features import FeatureType, TopicAndStyleFeatures
from .routing import TRAINING_PARTITION
from .target_class import TargetClass
from .utils import setup_logging, sha256_of_obj

log = logging.getLogger(__name__)

FULL_CORPUS_NAME = "full-corpus.arff"


@dataclass
class PassStats:
    seen: int = 0
    used: int = 0
    skipped: List[int] = field(default_factory=list)  # reader positions


@dataclass
class ExtractionStats:
    determination: Optional[PassStats] = None
    computation: Optional[PassStats] = None


class FeatureExtractor:
    def __init__(
        self,
        target_class: TargetClass,
        feature_config: Optional[Dict[str, Any]] = None,
        normalization_config: Optional[Dict[str, Any]] = None,
        engine_factory: Callable[[], AnnotationEngine] = RegexAnnotationEngine,
        reader_factory: Callable[[Path], CollectionReader] = CollectionReader,
        feature_factory: Callable[[], FeatureType] = TopicAndStyleFeatures,
        balancer: Optional[Balancer] = None,
        writer_factory: Optional[Callable[[Path], FeatureFileWriter]] = None,
    ):
        if target_class is None:
            raise ValueError("target_class is required")
        self.target_class = target_class
        self.feature_config = feature_config if feature_config is not None else load_feature_config()
        self.normalization_config = (
            normalization_config if normalization_config is not None else load_normalization_config()
        )
        self.engine_factory = engine_factory
        self.reader_factory = reader_factory
        self.feature_factory = feature_factory
        self.balancer = balancer
        self.writer_factory = writer_factory
        self.stats = ExtractionStats()
        self.feature_names: Optional[List[str]] = None
        self._determined: Optional[FeatureType] = None

    # ------------------------------
    # Corpus scan
    # ------------------------------

    def _scan(self, data_dir: Path, handle: Callable[[AnalyzedDocument, str], None]) -> PassStats:
        """One pass: fresh reader + engine, labeled documents only, always torn down."""
        stats = PassStats()
        reader = engine = None
        try:
            reader = self.reader_factory(data_dir)
            engine = self.engine_factory()
            for document in reader:
                position = stats.seen
                stats.seen += 1
                class_value = self.target_class.get_class_value(document)
                if class_value is None:
                    log.debug(f"skip #{position} {document.meta.uri}: no class value")
                    stats.skipped.append(position)
                    continue
                analyzed = engine.process(document)
                try:
                    handle(analyzed, class_value)
                finally:
                    engine.reset()
                stats.used += 1
        except ArticleVecError:
            raise
        except Exception as e:
            raise PipelineError(f"Pass over {data_dir} failed: {e}") from e
        finally:
            if reader is not None:
                reader.close()
            if engine is not None:
                engine.close()
        return stats

    def initialize_features(self) -> FeatureType:
        features = self.feature_factory()
        features.initialize_feature_determination(self.feature_config)
        return features

    def determine_features(self, data_dir: Path) -> List[str]:
        """Pass 1: observe every labeled document, then fix the feature list."""
        log.info(f"Determining features from {data_dir}")
        features = self.initialize_features()

        def update(doc: AnalyzedDocument, class_value: str) -> None:
            meta = doc.document.meta
            features.update_candidate_features(doc, meta.begin, meta.end)

        stats = self._scan(data_dir, update)
        names = list(features.determine_features(self.feature_config, self.normalization_config))
        self.stats.determination = stats
        self.feature_names = names
        self._determined = features
        log.info(f"  {stats.used} document(s) used, {len(stats.skipped)} skipped -> {len(names)} features")
        return names

    def compute_feature_vectors(self, data_dir: Path, features: FeatureType, n_features: int) -> LabeledDataset:
        """Pass 2: one normalized vector per labeled document, deduplicated."""
        log.info(f"Computing feature vectors for {data_dir}")
        dataset = LabeledDataset()

        def compute(doc: AnalyzedDocument, class_value: str) -> None:
            meta = doc.document.meta
            values = features.compute_normalized_feature_values(doc, meta.begin, meta.end)
            if len(values) != n_features:
                raise PipelineError(
                    f"{meta.uri or 'document'}: {len(values)} values for {n_features} features"
                )
            if not np.isfinite(np.asarray(values, dtype=np.float64)).all():
                raise PipelineError(f"{meta.uri or 'document'}: found non-finite feature values")
            dataset.add(values, class_value)

        stats = self._scan(data_dir, compute)
        self.stats.computation = stats
        first = self.stats.determination
        if first is not None and first.skipped != stats.skipped:
            raise PipelineError("Documents skipped in pass 2 differ from pass 1")
        log.info(
            f"  {stats.used} document(s) used, {len(stats.skipped)} skipped, "
            f"{dataset.duplicates} duplicate(s) dropped -> {len(dataset)} instances"
        )
        return dataset

    # ------------------------------
    # Runs
    # ------------------------------

    def extract(
        self,
        data_dir: Path,
        output_file: Path,
        feature_names: Optional[Sequence[str]] = None,
        is_training_set: bool = True,
    ) -> ExportSummary:
        log.info(f"Extract {data_dir} -> {output_file}")
        if feature_names is None:
            feature_names = self.determine_features(data_dir)
            features = self._determined
        else:
            self.stats.determination = None
            features = self.initialize_features()
        names = list(feature_names)
        features.initialize_feature_computation(names, self.feature_config, self.normalization_config)

        dataset = self.compute_feature_vectors(data_dir, features, len(names))
        writer = self.writer_factory(output_file) if self.writer_factory else None
        return export(
            dataset,
            is_training_set,
            self.target_class,
            output_file,
            names,
            str(data_dir),
            balancer=self.balancer,
            writer=writer,
            extra_meta={
                "feature_config_sha256": sha256_of_obj(self.feature_config),
                "normalization_config_sha256": sha256_of_obj(self.normalization_config),
                "passes": asdict(self.stats),
            },
        )

    def extract_all(self, data_root: Path, output_root: Path) -> ExportSummary:
        """Everything under ``data_root/training`` into ``output_root/full-corpus.arff``."""
        output_root.mkdir(parents=True, exist_ok=True)
        return self.extract(data_root / TRAINING_PARTITION, output_root / FULL_CORPUS_NAME)


# ------------------------------
# CLI
# ------------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Two-pass feature extraction into a single ARFF file")
    ap.add_argument("target_class", help="Target class: " + ", ".join(t.name for t in TargetClass))
    ap.add_argument("data_root", type=Path, help="Routed corpus root (contains training/)")
    ap.add_argument("output_root", type=Path, help="Output directory for full-corpus.arff")
    ap.add_argument("--feature-config", type=Path, help="Feature selection table (JSON)")
    ap.add_argument("--normalization-config", type=Path, help="Normalization table (JSON)")
    ap.add_argument("--seed", type=int, default=42, help="Seed for class balancing")
    ap.add_argument("--oversample", action="store_true", help="Oversample minority classes")
    ap.add_argument("--no-undersample", action="store_true", help="Keep majority classes whole")
    ap.add_argument("--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    extractor = FeatureExtractor(
        TargetClass.from_name(args.target_class),
        feature_config=load_feature_config(args.feature_config),
        normalization_config=load_normalization_config(args.normalization_config),
        balancer=DatasetBalancer(
            oversample=args.oversample, undersample=not args.no_undersample, seed=args.seed
        ),
    )
    summary = extractor.extract_all(args.data_root, args.output_root)
    print(json.dumps({"outputs": asdict(summary)}, indent=2))


if __name__ == "__main__":
    main()
