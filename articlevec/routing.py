"""
Corpus routing: decide which partition(s) an article goes to and write the
built document through a per-partition, sequence-numbered sink.

Layout on disk:

  <output>/<partition>/<0000000000>-<veracity_type>-<n>.json
"""
from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Set

from .article import Article
from .document import AnnotatedDocument, build_document

log = logging.getLogger(__name__)

TRAINING_PARTITION = "training"
DOCUMENT_SUFFIX = ".json"


class PartitionSink:
    """Append-only writer for one partition. Safe to share between threads."""

    def __init__(self, output_folder: Path, veracity_type: str):
        output_folder.mkdir(parents=True, exist_ok=True)
        if not output_folder.is_dir():
            raise NotADirectoryError(f"Not a directory {output_folder}")
        self.output_folder = output_folder
        self.veracity_type = veracity_type
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        return self._count

    def filename(self, n: int) -> str:
        return f"{n:010d}-{self.veracity_type}-{n}{DOCUMENT_SUFFIX}"

    def write(self, document: AnnotatedDocument) -> Path:
        payload = json.dumps(document.to_dict(), ensure_ascii=False)
        with self._lock:
            out_fp = self.output_folder / self.filename(self._count)
            log.info(f"Writing to {out_fp}")
            # "x": never overwrite stale output from an earlier aborted run
            with open(out_fp, "x", encoding="utf-8") as f:
                f.write(payload)
            self._count += 1
        return out_fp


# ------------------------------
# Routing policies
# ------------------------------

class RoutingPolicy(Protocol):
    def partitions(self, article: Article) -> Sequence[str]:
        ...


class TrainingPolicy:
    """Every article goes to the training partition."""

    def partitions(self, article: Article) -> Sequence[str]:
        return [TRAINING_PARTITION]


class FoldPolicy:
    """
    Route by fold membership of one article attribute (portal by default).

    ``folds`` maps a fold name to the attribute values that belong to it. A
    document may land in zero, one, or several folds. With
    ``include_training`` every article additionally goes to training, so an
    empty fold table behaves exactly like :class:`TrainingPolicy`.
    """

    def __init__(
        self,
        folds: Mapping[str, Collection[str]],
        key: str = "portal",
        include_training: bool = True,
    ):
        self.folds = {name: frozenset(members) for name, members in folds.items()}
        self.key = key
        self.include_training = include_training

    def partitions(self, article: Article) -> Sequence[str]:
        value = getattr(article, self.key)
        out = [TRAINING_PARTITION] if self.include_training else []
        out += [name for name, members in sorted(self.folds.items()) if value in members]
        return out

    @classmethod
    def from_file(cls, path: Path, include_training: bool = True) -> "FoldPolicy":
        """Load ``{"key": "portal", "folds": {"fold1": [...], ...}}``."""
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        return cls(obj.get("folds", {}), key=obj.get("key", "portal"), include_training=include_training)


# ------------------------------
# Router
# ------------------------------

class CorpusRouter:
    def __init__(self, output_dir: Path, veracity_type: str, policy: Optional[RoutingPolicy] = None):
        output_dir.mkdir(parents=True, exist_ok=True)
        if not output_dir.is_dir():
            raise NotADirectoryError(f"Not a directory {output_dir}")
        self.output_dir = output_dir
        self.veracity_type = veracity_type
        self.policy = policy or TrainingPolicy()
        self._sinks: Dict[str, PartitionSink] = {}
        self._sinks_lock = threading.Lock()

    def sink(self, partition: str) -> PartitionSink:
        with self._sinks_lock:
            if partition not in self._sinks:
                self._sinks[partition] = PartitionSink(self.output_dir / partition, self.veracity_type)
            return self._sinks[partition]

    def route(self, article: Article) -> List[PartitionSink]:
        return [self.sink(p) for p in self.policy.partitions(article)]

    def accept(self, article: Article) -> List[Path]:
        sinks = self.route(article)
        if not sinks:
            return []
        document = build_document(article)
        return [s.write(document) for s in sinks]

    def _write_all(self, sinks: List[PartitionSink], document: AnnotatedDocument, failed: threading.Event) -> None:
        if failed.is_set():
            return
        try:
            for s in sinks:
                s.write(document)
        except BaseException:
            failed.set()
            raise

    def counts(self) -> Dict[str, int]:
        return {name: sink.count for name, sink in sorted(self._sinks.items())}

    def process(self, articles: Iterable[Article], workers: int = 1) -> Dict[str, int]:
        """Route and write every article; the first failure aborts the run."""
        if workers <= 1:
            for article in articles:
                self.accept(article)
        else:
            self._process_parallel(articles, workers)
        return self.counts()

    def _process_parallel(self, articles: Iterable[Article], workers: int) -> None:
        """
        Documents are built in input order on the calling thread; only the
        writes run in the pool, at most ``workers`` of them in flight. Once a
        build or a write fails, nothing new is submitted, queued writes are
        cancelled, and the error is re-raised after in-flight writes finish.
        """
        failed = threading.Event()
        pool = ThreadPoolExecutor(max_workers=workers)
        pending: Set[Future] = set()
        try:
            for article in articles:
                sinks = self.route(article)
                if not sinks:
                    continue
                document = build_document(article)
                while len(pending) >= workers:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for fut in done:
                        fut.result()
                pending.add(pool.submit(self._write_all, sinks, document, failed))
            for fut in pending:
                fut.result()
        except BaseException:
            failed.set()
            pool.shutdown(wait=True, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
