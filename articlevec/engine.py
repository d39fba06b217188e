"""
Collection reader and annotation engine.

Both are single-cursor resources: one document in flight at a time, one
instance per pass, explicitly closed when the pass ends. Reusing either
after ``close()`` raises PipelineError.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from .document import AnnotatedDocument, TypedSpan
from .errors import PipelineError

log = logging.getLogger(__name__)

TOKEN = "token"
SENTENCE = "sentence"

RE_TOKEN = re.compile(r"\w+(?:['’]\w+)*|[^\w\s]", re.UNICODE)
# A sentence ends at terminal punctuation (plus closing quotes/brackets) or a blank line
RE_SENTENCE_END = re.compile(r"[.!?]+[\"'”’)\]]*(?=\s|$)|\n\s*\n")


# ------------------------------
# Collection reader
# ------------------------------

class CollectionReader:
    """Lazy, finite, non-restartable stream of serialized documents."""

    def __init__(self, directory: Path, recursive: bool = True, pattern: str = "*.json"):
        if not directory.is_dir():
            raise PipelineError(f"Input directory does not exist: {directory}")
        self.directory = directory
        self.recursive = recursive
        glob = directory.rglob if recursive else directory.glob
        self._files = sorted(p for p in glob(pattern) if p.is_file())
        log.debug(f"{len(self._files)} document(s) under {directory}")
        self._pos = 0
        self.closed = False
        self._iterating = False

    def __len__(self) -> int:
        return len(self._files)

    def has_next(self) -> bool:
        self._check_open()
        return self._pos < len(self._files)

    def get_next(self) -> AnnotatedDocument:
        if not self.has_next():
            raise PipelineError(f"Collection exhausted: {self.directory}")
        fp = self._files[self._pos]
        self._pos += 1
        try:
            with open(fp, "r", encoding="utf-8") as f:
                return AnnotatedDocument.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PipelineError(f"Could not read document {fp}: {e}") from e

    def __iter__(self) -> Iterator[AnnotatedDocument]:
        self._check_open()
        if self._iterating or self._pos:
            raise PipelineError("CollectionReader is not restartable")
        self._iterating = True
        while self.has_next():
            yield self.get_next()

    def close(self) -> None:
        self.closed = True

    def _check_open(self) -> None:
        if self.closed:
            raise PipelineError("CollectionReader used after close()")

    def __enter__(self) -> "CollectionReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# ------------------------------
# Annotation engine
# ------------------------------

@dataclass
class AnalyzedDocument:
    """A built document plus the annotation layers one engine added to it."""
    document: AnnotatedDocument
    layers: Dict[str, Tuple[TypedSpan, ...]] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.document.text

    def layer(self, name: str, begin: int = 0, end: Optional[int] = None) -> List[TypedSpan]:
        """Spans of an annotation layer (or a document span layer) inside [begin, end)."""
        end = len(self.text) if end is None else end
        spans = self.layers[name] if name in self.layers else tuple(self.document.spans_of(name))
        return [s for s in spans if s.begin >= begin and s.end <= end]

    def tokens(self, begin: int = 0, end: Optional[int] = None) -> List[str]:
        return [self.text[s.begin : s.end] for s in self.layer(TOKEN, begin, end)]


class AnnotationEngine(Protocol):
    def process(self, document: AnnotatedDocument) -> AnalyzedDocument:
        ...

    def reset(self) -> None:
        ...

    def close(self) -> None:
        ...


class RegexAnnotationEngine:
    """Tokens and sentences from regular expressions. One document at a time."""

    def __init__(self):
        self._busy = False
        self.closed = False
        self.processed = 0

    def process(self, document: AnnotatedDocument) -> AnalyzedDocument:
        if self.closed:
            raise PipelineError("AnnotationEngine used after close()")
        if self._busy:
            raise PipelineError("AnnotationEngine is still holding the previous document; call reset()")
        self._busy = True
        text = document.text
        tokens = tuple(TypedSpan(TOKEN, m.start(), m.end()) for m in RE_TOKEN.finditer(text))
        self.processed += 1
        return AnalyzedDocument(document, {TOKEN: tokens, SENTENCE: self._sentences(text)})

    @staticmethod
    def _sentences(text: str) -> Tuple[TypedSpan, ...]:
        out = []
        start = 0
        for m in RE_SENTENCE_END.finditer(text):
            if text[start : m.end()].strip():
                out.append(_trimmed(SENTENCE, text, start, m.end()))
            start = m.end()
        if text[start:].strip():
            out.append(_trimmed(SENTENCE, text, start, len(text)))
        return tuple(out)

    def reset(self) -> None:
        self._busy = False

    def close(self) -> None:
        self._busy = False
        self.closed = True


def _trimmed(layer: str, text: str, begin: int, end: int) -> TypedSpan:
    while begin < end and text[begin].isspace():
        begin += 1
    while end > begin and text[end - 1].isspace():
        end -= 1
    return TypedSpan(layer, begin, end)
