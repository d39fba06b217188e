import json
import threading

import pytest

from articlevec.article import Span
from articlevec.document import AnnotatedDocument, build_document
from articlevec.errors import SpanError
from articlevec.routing import (
    TRAINING_PARTITION,
    CorpusRouter,
    FoldPolicy,
    PartitionSink,
    TrainingPolicy,
)

from conftest import make_article


def test_sink_names_files_sequentially(tmp_path, article):
    sink = PartitionSink(tmp_path / "training", "false")
    doc = build_document(article)
    first = sink.write(doc)
    second = sink.write(doc)
    assert first.name == "0000000000-false-0.json"
    assert second.name == "0000000001-false-1.json"
    assert sink.count == 2
    assert AnnotatedDocument.from_dict(json.loads(first.read_text(encoding="utf-8"))) == doc


def test_sink_never_overwrites_stale_output(tmp_path, article):
    folder = tmp_path / "training"
    folder.mkdir()
    (folder / "0000000000-true-0.json").write_text("{}")
    sink = PartitionSink(folder, "true")
    with pytest.raises(FileExistsError):
        sink.write(build_document(article))
    assert sink.count == 0


def test_sink_rejects_file_as_folder(tmp_path):
    target = tmp_path / "taken"
    target.write_text("x")
    with pytest.raises(OSError):
        PartitionSink(target, "true")


def test_concurrent_writes_get_distinct_numbers(tmp_path, article):
    sink = PartitionSink(tmp_path / "training", "true")
    doc = build_document(article)
    paths = []
    lock = threading.Lock()

    def worker():
        for _ in range(25):
            p = sink.write(doc)
            with lock:
                paths.append(p.name)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sink.count == 200
    assert len(set(paths)) == 200
    assert sorted(paths)[-1] == "0000000199-true-199.json"


def test_training_policy_routes_everything(article):
    assert list(TrainingPolicy().partitions(article)) == [TRAINING_PARTITION]


def test_fold_policy_without_folds_is_training_only(article):
    assert list(FoldPolicy({}).partitions(article)) == list(TrainingPolicy().partitions(article))


def test_fold_policy_routes_by_portal():
    policy = FoldPolicy({"fold2": {"b.com"}, "fold1": {"a.com", "b.com"}})
    a = make_article(portal="a.com")
    b = make_article(portal="b.com")
    c = make_article(portal="c.com")
    assert list(policy.partitions(a)) == ["training", "fold1"]
    assert list(policy.partitions(b)) == ["training", "fold1", "fold2"]
    assert list(policy.partitions(c)) == ["training"]

    folds_only = FoldPolicy({"fold1": {"a.com"}}, include_training=False)
    assert list(folds_only.partitions(c)) == []


def test_fold_policy_from_file(tmp_path):
    fp = tmp_path / "folds.json"
    fp.write_text(json.dumps({"key": "orientation", "folds": {"fold1": ["left"]}}))
    policy = FoldPolicy.from_file(fp)
    assert list(policy.partitions(make_article(orientation="left"))) == ["training", "fold1"]


def test_router_writes_to_every_routed_partition(tmp_path):
    router = CorpusRouter(tmp_path, "true", FoldPolicy({"fold1": {"a.com"}}))
    router.accept(make_article(title="One", portal="a.com"))
    router.accept(make_article(title="Two", portal="z.com"))
    assert router.counts() == {"fold1": 1, "training": 2}
    assert sorted(p.name for p in (tmp_path / "training").iterdir()) == [
        "0000000000-true-0.json",
        "0000000001-true-1.json",
    ]
    assert [p.name for p in (tmp_path / "fold1").iterdir()] == ["0000000000-true-0.json"]


def test_router_skips_articles_routed_nowhere(tmp_path):
    router = CorpusRouter(tmp_path, "true", FoldPolicy({}, include_training=False))
    assert router.accept(make_article()) == []
    assert router.counts() == {}


def test_router_process_with_thread_pool(tmp_path):
    router = CorpusRouter(tmp_path, "true")
    articles = [make_article(title=f"T{i}") for i in range(30)]
    counts = router.process(articles, workers=4)
    assert counts == {"training": 30}
    assert len(list((tmp_path / "training").iterdir())) == 30


def test_thread_pool_stops_writing_after_a_bad_article(tmp_path):
    router = CorpusRouter(tmp_path, "true")
    articles = [make_article(title=f"early{i}") for i in range(20)]
    articles.append(make_article(title="broken", quotes=(Span(0, 999),)))
    articles += [make_article(title=f"late{i}") for i in range(40)]
    with pytest.raises(SpanError):
        router.process(iter(articles), workers=2)
    written = [p.read_text(encoding="utf-8") for p in (tmp_path / "training").iterdir()]
    assert len(written) <= 20
    assert not any("late" in text for text in written)


def test_thread_pool_write_failure_is_raised(tmp_path):
    router = CorpusRouter(tmp_path, "true")
    stale = tmp_path / "training" / router.sink(TRAINING_PARTITION).filename(3)
    stale.write_text("{}", encoding="utf-8")
    articles = [make_article(title=f"T{i}") for i in range(30)]
    with pytest.raises(FileExistsError):
        router.process(articles, workers=3)
    assert router.counts() == {"training": 3}
