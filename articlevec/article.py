"""
Raw article records as they come out of the corpus dumps.

An article file is either a single JSON object, a JSON list of objects, or a
JSONL file with one object per line:

  {"uri": "...", "title": "...", "mainText": "...", "author": "...",
   "portal": "...", "orientation": "left", "veracity": "mostly true",
   "paragraphs": [{"begin": 0, "end": 120}, ...],
   "quotes": [[10, 42], ...],
   "links": [{"begin": 60, "end": 71, "href": "https://..."}]}

Span offsets are relative to ``mainText``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .utils import iter_jsonl_text, read_text_fallback

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Span:
    begin: int
    end: int
    href: Optional[str] = None

    @classmethod
    def from_obj(cls, obj: Any) -> "Span":
        if isinstance(obj, dict):
            return cls(begin=int(obj["begin"]), end=int(obj["end"]), href=obj.get("href"))
        begin, end = obj
        return cls(begin=int(begin), end=int(end))


def _spans(d: Dict[str, Any], key: str) -> Tuple[Span, ...]:
    return tuple(Span.from_obj(s) for s in (d.get(key) or []))


@dataclass(frozen=True)
class Article:
    title: str
    main_text: str
    veracity: str
    author: str = ""
    portal: str = ""
    orientation: str = ""
    uri: str = ""
    paragraphs: Tuple[Span, ...] = field(default_factory=tuple)
    quotes: Tuple[Span, ...] = field(default_factory=tuple)
    links: Tuple[Span, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Article":
        # title/text/veracity are required and raise KeyError if absent
        main_text = d["mainText"] if "mainText" in d else d["main_text"]
        return cls(
            title=d["title"],
            main_text=main_text,
            veracity=str(d["veracity"]),
            author=d.get("author", "") or "",
            portal=d.get("portal", "") or "",
            orientation=d.get("orientation", "") or "",
            uri=d.get("uri", "") or "",
            paragraphs=_spans(d, "paragraphs"),
            quotes=_spans(d, "quotes"),
            links=_spans(d, "links"),
        )


def load_article_file(path: Path) -> List[Article]:
    text = read_text_fallback(path)
    if text is None:
        return []
    if path.suffix == ".jsonl":
        return [Article.from_dict(d) for d in iter_jsonl_text(text)]
    obj = json.loads(text)
    if isinstance(obj, list):
        return [Article.from_dict(d) for d in obj]
    return [Article.from_dict(obj)]


def read_articles(folder: Path) -> Iterator[Article]:
    """Yield every article below ``folder`` in sorted file order."""
    files = sorted(p for p in folder.rglob("*") if p.suffix in (".json", ".jsonl") and p.is_file())
    log.info(f"Found {len(files)} article file(s) in {folder}")
    for fp in files:
        yield from load_article_file(fp)
