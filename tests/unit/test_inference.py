import numpy as np
import pytest

from fruitnet.core.network import NeuralNet
from fruitnet.data.preprocessing import FeatureNormalizer
from fruitnet.errors import DatasetError, ShapeError
from fruitnet.inference import FruitClassifier

CLASSES = ("apple", "grape", "orange")


def _classifier(bias=(0.0, 0.0, 0.0)):
    net = NeuralNet(4, 3, 3, seed=0)
    net.W1 = np.zeros((4, 3))
    net.W2 = np.zeros((3, 3))
    net.b2 = np.array(bias, dtype=np.float64)
    normalizer = FeatureNormalizer.from_state([100.0, 5.0, 5.0, 5.0], [50.0, 2.0, 2.0, 2.0])
    return FruitClassifier(net, normalizer, CLASSES)


def test_low_confidence_reports_unknown():
    prediction = _classifier().predict(150, 7, 6, 6)
    assert prediction.label == "unknown"
    assert prediction.class_index is None
    assert prediction.confidence == pytest.approx(1 / 3)


def test_confident_prediction_returns_trained_class():
    prediction = _classifier(bias=(0.0, 0.0, 10.0)).predict(150, 7, 6, 6)
    assert prediction.label == "orange"
    assert prediction.class_index == 2
    assert 0.99 < prediction.confidence <= 1.0


def test_confidence_just_above_threshold_keeps_class():
    clf = _classifier(bias=(np.log(2.2), 0.0, 0.0))
    prediction = clf.predict(150, 7, 6, 6)
    assert prediction.confidence > 0.5
    assert prediction.label == "apple"


def test_non_positive_measurements_are_rejected():
    with pytest.raises(DatasetError):
        _classifier().predict(150, 0, 6, 6)
    with pytest.raises(ShapeError):
        _classifier().predict_many([[1.0, 2.0]])


def test_mismatched_vocabulary_is_rejected():
    net = NeuralNet(4, 3, 2, seed=0)
    normalizer = FeatureNormalizer.from_state(np.zeros(4), np.ones(4))
    with pytest.raises(ShapeError):
        FruitClassifier(net, normalizer, CLASSES)


def test_checkpoint_roundtrip(tmp_path):
    original = FruitClassifier(
        NeuralNet(4, 6, 3, seed=5),
        FeatureNormalizer.from_state([100.0, 5.0, 5.0, 5.0], [50.0, 2.0, 2.0, 2.0]),
        CLASSES,
        unknown_threshold=0.6,
    )
    path = original.save(tmp_path / "ckpt" / "model.npz")
    restored = FruitClassifier.load(path)
    rows = np.array([[150.0, 7.0, 6.0, 6.0], [5.0, 2.0, 1.5, 2.0]])
    assert np.allclose(original.predict_proba(rows), restored.predict_proba(rows))
    assert restored.class_names == CLASSES
    assert restored.unknown_threshold == pytest.approx(0.6)
    with pytest.raises(DatasetError):
        FruitClassifier.load(tmp_path / "missing.npz")


def test_corrupt_checkpoints_raise_dataset_error(tmp_path):
    missing_keys = tmp_path / "partial.npz"
    np.savez(missing_keys, W1=np.zeros((4, 2)))
    not_a_zip = tmp_path / "notes.npz"
    not_a_zip.write_text("weight,size,width,height\n")
    good = FruitClassifier(
        NeuralNet(4, 6, 3, seed=5),
        FeatureNormalizer.from_state(np.zeros(4), np.ones(4)),
        CLASSES,
    ).save(tmp_path / "good.npz")
    truncated = tmp_path / "truncated.npz"
    truncated.write_bytes(good.read_bytes()[:64])

    for path in (missing_keys, not_a_zip, truncated):
        with pytest.raises(DatasetError, match="Invalid checkpoint"):
            FruitClassifier.load(path)
