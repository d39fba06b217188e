"""
Annotated documents: one article laid out as a single text buffer

    title + "\\n\\n" + main text

with a metadata record over the whole buffer and typed [begin, end) spans
for the title, the main text, and the paragraph / quote / link layers.

Building is pure. Writing a document to disk is the partition sink's job
(see routing.py); reading it back is the collection reader's (engine.py).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .article import Article, Span
from .errors import SpanError

TITLE_SEPARATOR = "\n\n"
DOCUMENT_LANGUAGE = "en"

# Span layers
TITLE = "title"
MAIN_TEXT = "main_text"
PARAGRAPH = "paragraph"
QUOTE = "quote"
LINK = "link"


@dataclass(frozen=True)
class TypedSpan:
    type: str
    begin: int
    end: int
    attrs: Tuple[Tuple[str, str], ...] = ()

    def attr(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return dict(self.attrs).get(key, default)


@dataclass(frozen=True)
class ArticleMetaData:
    begin: int
    end: int
    uri: str
    author: str
    portal: str
    orientation: str
    veracity: str
    offset_in_source: int
    document_size: int
    last_segment: bool


@dataclass(frozen=True)
class AnnotatedDocument:
    text: str
    meta: ArticleMetaData
    spans: Tuple[TypedSpan, ...] = field(default_factory=tuple)
    language: str = DOCUMENT_LANGUAGE

    def __post_init__(self):
        n = len(self.text)
        check_span("metadata", self.meta.begin, self.meta.end, n)
        for s in self.spans:
            check_span(s.type, s.begin, s.end, n)

    def spans_of(self, layer: str) -> List[TypedSpan]:
        return [s for s in self.spans if s.type == layer]

    def covered_text(self, span: TypedSpan) -> str:
        return self.text[span.begin : span.end]

    @property
    def title_span(self) -> TypedSpan:
        return self.spans_of(TITLE)[0]

    @property
    def main_text_span(self) -> TypedSpan:
        return self.spans_of(MAIN_TEXT)[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "language": self.language,
            "meta": asdict(self.meta),
            "spans": [
                {"type": s.type, "begin": s.begin, "end": s.end, **({"attrs": dict(s.attrs)} if s.attrs else {})}
                for s in self.spans
            ],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnnotatedDocument":
        """Inverse of :meth:`to_dict`. Spans are re-validated against the text."""
        spans = tuple(
            TypedSpan(
                type=s["type"],
                begin=int(s["begin"]),
                end=int(s["end"]),
                attrs=tuple(sorted((s.get("attrs") or {}).items())),
            )
            for s in d.get("spans", [])
        )
        return cls(
            text=d["text"],
            meta=ArticleMetaData(**d["meta"]),
            spans=spans,
            language=d.get("language", DOCUMENT_LANGUAGE),
        )


def check_span(layer: str, begin: int, end: int, limit: int) -> None:
    if not 0 <= begin <= end <= limit:
        raise SpanError(f"{layer} span [{begin}, {end}) outside [0, {limit})")


def _translate(layer: str, spans: Iterable[Span], offset: int, source_len: int) -> List[TypedSpan]:
    out = []
    for s in spans:
        # offsets are checked in the article's own coordinates, never clamped
        check_span(layer, s.begin, s.end, source_len)
        attrs = (("href", s.href),) if s.href is not None else ()
        out.append(TypedSpan(layer, s.begin + offset, s.end + offset, attrs))
    return out


def build_document(
    article: Article,
    offset_in_source: int = 0,
    last_segment: bool = True,
) -> AnnotatedDocument:
    """
    Lay out one article as an :class:`AnnotatedDocument`.

    Raises SpanError when a paragraph/quote/link span does not fit into the
    article's main text.
    """
    text = article.title + TITLE_SEPARATOR + article.main_text
    text_offset = len(article.title) + len(TITLE_SEPARATOR)

    meta = ArticleMetaData(
        begin=0,
        end=len(text),
        uri=article.uri,
        author=article.author,
        portal=article.portal,
        orientation=article.orientation,
        veracity=str(article.veracity),
        offset_in_source=offset_in_source,
        document_size=len(text),
        last_segment=last_segment,
    )

    spans = [
        TypedSpan(TITLE, 0, len(article.title)),
        TypedSpan(MAIN_TEXT, text_offset, len(text)),
    ]
    n_main = len(article.main_text)
    spans += _translate(PARAGRAPH, article.paragraphs, text_offset, n_main)
    spans += _translate(QUOTE, article.quotes, text_offset, n_main)
    spans += _translate(LINK, article.links, text_offset, n_main)

    return AnnotatedDocument(text=text, meta=meta, spans=tuple(spans))
