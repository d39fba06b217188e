"""
Build annotated documents from raw article dumps and route them into
partition directories.

Usage:
  articlevec-preprocess data/articles/true data/routed true
  # Optional flags:
  #   --workers 4         write through a thread pool
  #   --folds folds.json  {"key": "portal", "folds": {"fold1": ["portal-a", ...]}}
  #   --folds-only        do not also route every article to training/
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .article import read_articles
from .routing import CorpusRouter, FoldPolicy, RoutingPolicy, TrainingPolicy
from .utils import setup_logging

log = logging.getLogger(__name__)


def preprocess(
    input_folder: Path,
    output_folder: Path,
    veracity_type: str,
    policy: Optional[RoutingPolicy] = None,
    workers: int = 1,
) -> Dict[str, int]:
    """Route every article under ``input_folder``; returns documents written per partition."""
    router = CorpusRouter(output_folder, veracity_type, policy or TrainingPolicy())
    counts = router.process(read_articles(input_folder), workers=workers)
    log.info(f"Done: {counts}")
    return counts


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Articles -> annotated documents, routed into partitions")
    ap.add_argument("input_folder", type=Path, help="Folder with article *.json / *.jsonl files")
    ap.add_argument("output_folder", type=Path, help="Root for partition directories")
    ap.add_argument("veracity_type", help="Tag used in output file names, e.g. 'true' or 'false'")
    ap.add_argument("--workers", type=int, default=1, help="Writer threads")
    ap.add_argument("--folds", type=Path, help="Fold membership table (JSON)")
    ap.add_argument("--folds-only", action="store_true", help="Route only by fold membership")
    ap.add_argument("--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    policy: RoutingPolicy = TrainingPolicy()
    if args.folds:
        policy = FoldPolicy.from_file(args.folds, include_training=not args.folds_only)

    counts = preprocess(args.input_folder, args.output_folder, args.veracity_type, policy, args.workers)
    print(json.dumps({"written": counts}, indent=2))


if __name__ == "__main__":
    main()
