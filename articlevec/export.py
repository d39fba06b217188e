"""
Export: balance (training sets only), then write the feature file and a
JSON sidecar describing the run.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .arff import FeatureFileWriter, WekaFeatureFileWriter
from .balance import Balancer, DatasetBalancer
from .dataset import LabeledDataset
from .target_class import TargetClass
from .utils import write_json

log = logging.getLogger(__name__)

# Fixed output format
IS_SPARSE = False
DECIMAL_PLACES = 3
IS_NUMERIC = False
RELATION_PREFIX = "webis"
RELATION_NAME = "stylometric-inquiry"
META_TYPE = "ArticleMetaData"


@dataclass
class ExportSummary:
    output_file: str
    n_instances: int
    n_features: int
    duplicates_dropped: int
    counts_before_balancing: Dict[str, int]
    counts_after_balancing: Dict[str, int]
    balanced: bool
    extra: Dict[str, Any] = field(default_factory=dict)


def default_writer(output_path: Path) -> WekaFeatureFileWriter:
    return WekaFeatureFileWriter(
        output_path, RELATION_PREFIX, RELATION_NAME, IS_SPARSE, DECIMAL_PLACES, IS_NUMERIC
    )


def export(
    dataset: LabeledDataset,
    is_training_set: bool,
    target_class: TargetClass,
    output_path: Path,
    feature_names: Sequence[str],
    source: str,
    balancer: Optional[Balancer] = None,
    writer: Optional[FeatureFileWriter] = None,
    extra_meta: Optional[Dict[str, Any]] = None,
) -> ExportSummary:
    """
    Balance ``dataset`` in place when it is a training set, then hand it to the
    writer. ``<output_path>.meta.json`` records names, counts and ``extra_meta``.
    """
    before = dataset.label_counts()
    if is_training_set:
        balancer = balancer or DatasetBalancer(oversample=False, undersample=True)
        values: List[List[float]] = list(dataset.values)
        class_values: List[str] = list(dataset.class_values)
        balancer.balance_instances(values, class_values)
        dataset.replace(values, class_values)
    after = dataset.label_counts()

    writer = writer or default_writer(output_path)
    writer.write_feature_file(
        dataset.values,
        dataset.class_values,
        source,
        META_TYPE,
        target_class.get_class_feature(),
        target_class.get_class_mapping(),
        list(feature_names),
    )
    log.info(f"Wrote {len(dataset)} instances x {len(feature_names)} features -> {output_path}")

    summary = ExportSummary(
        output_file=str(output_path),
        n_instances=len(dataset),
        n_features=len(feature_names),
        duplicates_dropped=dataset.duplicates,
        counts_before_balancing=before,
        counts_after_balancing=after,
        balanced=is_training_set,
        extra=dict(extra_meta or {}),
    )
    meta = {
        "schema_version": "articlevec-features-v1",
        "source": source,
        "target_class": target_class.name,
        "class_feature": f"{META_TYPE}.{target_class.get_class_feature()}",
        "class_mapping": target_class.get_class_mapping(),
        **asdict(summary),
        "feature_names": list(feature_names),
    }
    write_json(Path(str(output_path) + ".meta.json"), meta)
    return summary
