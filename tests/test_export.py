import json

from articlevec.dataset import LabeledDataset
from articlevec.export import META_TYPE, export
from articlevec.target_class import TargetClass


class RecordingWriter:
    def __init__(self):
        self.calls = []

    def write_feature_file(self, values, class_values, source, meta_type, class_feature,
                           class_mapping, feature_names):
        self.calls.append(dict(
            values=[list(v) for v in values],
            class_values=list(class_values),
            source=source,
            meta_type=meta_type,
            class_feature=class_feature,
            class_mapping=class_mapping,
            feature_names=list(feature_names),
        ))


class DropLastBalancer:
    """Deterministic stand-in: removes the final instance."""

    def __init__(self):
        self.calls = 0

    def balance_instances(self, values, class_values):
        self.calls += 1
        del values[-1]
        del class_values[-1]


def _dataset():
    ds = LabeledDataset()
    ds.add([1.0, 0.0], "real")
    ds.add([0.0, 1.0], "fake")
    ds.add([0.5, 0.5], "fake")
    return ds


def test_training_set_is_balanced_before_writing(tmp_path):
    ds = _dataset()
    writer, balancer = RecordingWriter(), DropLastBalancer()
    summary = export(ds, True, TargetClass.VERACITY, tmp_path / "out.arff", ["a", "b"], "/src",
                     balancer=balancer, writer=writer)
    assert balancer.calls == 1
    call = writer.calls[0]
    assert call["values"] == [[1.0, 0.0], [0.0, 1.0]]
    assert call["class_values"] == ["real", "fake"]
    assert call["source"] == "/src"
    assert call["meta_type"] == META_TYPE
    assert call["class_feature"] == "veracity"
    assert call["class_mapping"] == {"true": "real", "false": "fake"}
    assert call["feature_names"] == ["a", "b"]
    # the balanced result replaces the dataset
    assert len(ds) == 2
    assert summary.counts_before_balancing == {"real": 1, "fake": 2}
    assert summary.counts_after_balancing == {"real": 1, "fake": 1}


def test_non_training_set_is_not_balanced(tmp_path):
    ds = _dataset()
    writer, balancer = RecordingWriter(), DropLastBalancer()
    export(ds, False, TargetClass.VERACITY, tmp_path / "out.arff", ["a", "b"], "/src",
           balancer=balancer, writer=writer)
    assert balancer.calls == 0
    assert len(writer.calls[0]["values"]) == 3


def test_meta_sidecar(tmp_path):
    out = tmp_path / "out.arff"
    export(_dataset(), False, TargetClass.VERACITY, out, ["a", "b"], "/src",
           writer=RecordingWriter(), extra_meta={"note": "x"})
    meta = json.loads((tmp_path / "out.arff.meta.json").read_text(encoding="utf-8"))
    assert meta["feature_names"] == ["a", "b"]
    assert meta["class_feature"] == "ArticleMetaData.veracity"
    assert meta["n_instances"] == 3
    assert meta["extra"] == {"note": "x"}


def test_export_twice_gives_identical_files(tmp_path):
    outputs = []
    for name in ("one", "two"):
        out = tmp_path / name / "full-corpus.arff"
        export(_dataset(), True, TargetClass.VERACITY, out, ["a", "b"], "/src",
               balancer=DropLastBalancer())
        outputs.append(out)
    assert outputs[0].read_bytes() == outputs[1].read_bytes()
    assert b"@data" in outputs[0].read_bytes()
