from pathlib import Path
from typing import List

import pytest

from articlevec.article import Article, Span
from articlevec.routing import CorpusRouter


def make_article(title="Title", main_text="Some body text.", veracity="true", **kw) -> Article:
    kw.setdefault("uri", f"https://example.org/{title.lower().replace(' ', '-')}")
    kw.setdefault("portal", "example.org")
    kw.setdefault("orientation", "mainstream")
    kw.setdefault("author", "Jo Writer")
    return Article(title=title, main_text=main_text, veracity=veracity, **kw)


@pytest.fixture
def article():
    main = "First paragraph. He said \"hi\".\nSecond paragraph with a link."
    return make_article(
        title="Breaking",
        main_text=main,
        paragraphs=(Span(0, 30), Span(31, len(main))),
        quotes=(Span(25, 29),),
        links=(Span(55, 59, href="https://example.org/x"),),
    )


@pytest.fixture
def routed_corpus(tmp_path):
    """Write articles through a router; returns the training directory."""

    def _write(articles: List[Article], tag: str = "mixed") -> Path:
        root = tmp_path / "routed"
        router = CorpusRouter(root, tag)
        for a in articles:
            router.accept(a)
        return root / "training"

    return _write
