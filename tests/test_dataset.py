import numpy as np

from articlevec.dataset import LabeledDataset, fingerprint


def test_same_pair_twice_is_stored_once():
    ds = LabeledDataset()
    assert ds.add([1.0, 2.0], "real") is True
    assert ds.add([1.0, 2.0], "real") is False
    assert len(ds) == 1
    assert ds.duplicates == 1


def test_same_values_different_label_are_kept():
    ds = LabeledDataset()
    ds.add([1.0, 2.0], "real")
    ds.add([1.0, 2.0], "fake")
    assert ds.class_values == ["real", "fake"]


def test_first_occurrence_order_is_kept():
    ds = LabeledDataset()
    for v, c in [([3.0], "a"), ([1.0], "b"), ([3.0], "a"), ([2.0], "a"), ([1.0], "b")]:
        ds.add(v, c)
    assert list(ds) == [([3.0], "a"), ([1.0], "b"), ([2.0], "a")]
    assert ds.label_counts() == {"a": 2, "b": 1}


def test_ints_and_floats_are_the_same_vector():
    ds = LabeledDataset()
    ds.add([1, 0], "a")
    ds.add(np.array([1.0, 0.0]), "a")
    assert len(ds) == 1
    assert fingerprint([1, 0], "a") == fingerprint([1.0, 0.0], "a")


def test_replace_rebuilds_index():
    ds = LabeledDataset()
    ds.add([1.0], "a")
    ds.replace([[2.0]], ["b"])
    assert ds.add([1.0], "a") is True
    assert ds.add([2.0], "b") is False


def test_nan_vectors_built_separately_are_duplicates():
    ds = LabeledDataset()
    assert ds.add([float("nan"), 1.0], "a") is True
    assert ds.add([float("nan"), 1.0], "a") is False
    assert ds.add(np.array([np.nan, 1.0]), "a") is False
    assert len(ds) == 1
    assert ds.duplicates == 2
