import pytest

from articlevec.arff import WekaFeatureFileWriter, quote

MAPPING = {"true": "real", "false": "fake"}


def _write(tmp_path, name="out.arff", **kw):
    writer = WekaFeatureFileWriter(tmp_path / name, "webis", "stylometric-inquiry", **kw)
    return writer.write_feature_file(
        [[0.5, 1.0 / 3.0], [0.0, -0.0001]],
        ["real", "fake"],
        "/data/training",
        "ArticleMetaData",
        "veracity",
        MAPPING,
        ["style.char_len", "word1.it's"],
    )


def test_dense_file_layout(tmp_path):
    text = _write(tmp_path).read_text(encoding="utf-8")
    assert text.splitlines() == [
        "% source: /data/training",
        "@relation webis-stylometric-inquiry",
        "",
        "@attribute style.char_len numeric",
        "@attribute 'word1.it\\'s' numeric",
        "@attribute ArticleMetaData.veracity {fake,real}",
        "",
        "@data",
        "0.500,0.333,real",
        "0.000,0.000,fake",
    ]


def test_sparse_rows(tmp_path):
    text = _write(tmp_path, is_sparse=True).read_text(encoding="utf-8")
    rows = text.splitlines()[-2:]
    assert rows == ["{0 0.500, 1 0.333, 2 real}", "{2 fake}"]


def test_numeric_class_column(tmp_path):
    text = _write(tmp_path, is_numeric=True).read_text(encoding="utf-8")
    assert "@attribute ArticleMetaData.veracity numeric" in text


def test_identical_input_identical_bytes(tmp_path):
    a = _write(tmp_path, "a.arff").read_bytes()
    b = _write(tmp_path, "b.arff").read_bytes()
    assert a == b


def test_quote():
    assert quote("plain_name.x") == "plain_name.x"
    assert quote("two words") == "'two words'"
    assert quote("new\nline") == "'new\\nline'"


def test_non_finite_values_are_rejected(tmp_path):
    writer = WekaFeatureFileWriter(tmp_path / "bad.arff", "webis", "x")
    with pytest.raises(ValueError, match="non-finite"):
        writer.write_feature_file([[float("nan"), float("inf")]], ["real"], "src", "M", "veracity", MAPPING, ["a", "b"])
    assert not (tmp_path / "bad.arff").exists()
