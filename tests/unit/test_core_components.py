import numpy as np
import pytest

from fruitnet.core.activations import relu, relu_deriv, softmax
from fruitnet.core.network import LOSS_EPS, NeuralNet, accuracy, cross_entropy_loss
from fruitnet.errors import ShapeError


def _objective(net, X, Y):
    probs = net.predict_proba(X)
    ce = -np.mean(np.sum(Y * np.log(probs), axis=1))
    return ce + 0.5 * net.l2_lambda * (np.sum(net.W1**2) + np.sum(net.W2**2))


def _toy_problem(rows=6, seed=0):
    rng = np.random.default_rng(seed)
    X = rng.standard_normal((rows, 4))
    Y = np.eye(3)[rng.integers(0, 3, size=rows)]
    return X, Y


def test_relu_and_derivative():
    x = np.array([[-1.0, 0.0, 2.5]])
    assert np.allclose(relu(x), [[0.0, 0.0, 2.5]])
    assert np.array_equal(relu_deriv(x), [[0.0, 0.0, 1.0]])


def test_softmax_rows_sum_to_one_for_large_inputs():
    z = np.array([[1000.0, 1000.0001, -1000.0], [0.0, 0.0, 0.0], [-5.0, 3.0, 1e-3]])
    probs = softmax(z)
    assert np.all(np.isfinite(probs))
    assert np.allclose(probs.sum(axis=1), 1.0)
    assert np.all((probs >= 0.0) & (probs <= 1.0))
    assert probs[0, 1] > probs[0, 0] > probs[0, 2]


def test_initialisation_is_glorot_scaled_and_seeded():
    net = NeuralNet(4, 5, 3, seed=11)
    assert net.W1.shape == (4, 5) and net.W2.shape == (5, 3)
    assert np.all(np.abs(net.W1) <= np.sqrt(2.0 / 9.0))
    assert np.all(np.abs(net.W2) <= np.sqrt(1.0 / 8.0))
    assert not net.b1.any() and not net.b2.any()

    again = NeuralNet(4, 5, 3, seed=11)
    assert np.array_equal(net.W1, again.W1)
    from_rng = NeuralNet(4, 5, 3, rng=np.random.default_rng(11))
    assert np.array_equal(net.W2, from_rng.W2)


def test_forward_shapes_and_probabilities():
    net = NeuralNet(4, 6, 3, seed=0)
    X, _ = _toy_problem()
    hidden_pre, hidden, output = net.forward(X)
    assert hidden_pre.shape == (6, 6)
    assert np.all(hidden >= 0.0)
    assert output.shape == (6, 3)
    assert np.allclose(output.sum(axis=1), 1.0)


def test_shape_errors_raise_immediately():
    net = NeuralNet(4, 6, 3, seed=0)
    X, Y = _toy_problem()
    with pytest.raises(ShapeError):
        net.forward(X[:, :3])
    with pytest.raises(ShapeError):
        net.train_one_epoch(X, Y[:-1], batch_size=2)
    with pytest.raises(ShapeError):
        net.train_one_epoch(X, Y[:, :2], batch_size=2)
    with pytest.raises(ShapeError):
        net.train_one_epoch(X, Y, batch_size=0)
    with pytest.raises(ShapeError):
        net.evaluate(np.zeros((0, 4)), np.zeros((0, 3)))


def test_gradients_match_finite_differences():
    net = NeuralNet(4, 5, 3, seed=3)
    X, Y = _toy_problem(rows=8, seed=4)
    grads = net.gradients(X, Y)
    eps = 1e-6
    for name in ("W1", "b1", "W2", "b2"):
        param = getattr(net, name)
        numeric = np.zeros_like(param)
        for idx in np.ndindex(param.shape):
            original = param[idx]
            param[idx] = original + eps
            plus = _objective(net, X, Y)
            param[idx] = original - eps
            minus = _objective(net, X, Y)
            param[idx] = original
            numeric[idx] = (plus - minus) / (2 * eps)
        assert np.allclose(grads[name], numeric, atol=1e-6, rtol=1e-4), name


def test_cross_entropy_loss_uses_epsilon_guard():
    targets = np.array([[1.0, 0.0], [0.0, 1.0]])
    assert cross_entropy_loss(targets.copy(), targets) == pytest.approx(0.0, abs=1e-12)
    zero_prob = np.array([[0.0, 1.0], [0.0, 1.0]])
    loss = cross_entropy_loss(zero_prob, targets)
    assert np.isfinite(loss)
    assert loss == pytest.approx(-np.log(LOSS_EPS) / 2, rel=1e-6)


def test_evaluate_perfect_and_always_wrong_networks():
    X = np.eye(3)
    Y = np.eye(3)
    perfect = NeuralNet(3, 3, 3, seed=0)
    perfect.W1 = np.eye(3)
    perfect.W2 = 50.0 * np.eye(3)
    assert perfect.evaluate(X, Y) == 1.0

    wrong = NeuralNet(3, 3, 3, seed=0)
    wrong.W1 = np.zeros((3, 3))
    wrong.W2 = np.zeros((3, 3))
    wrong.b2 = np.array([0.0, 0.0, 10.0])
    targets = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]])
    assert wrong.evaluate(X, targets) == 0.0


def test_accuracy_tie_break_and_unrepresented_rows():
    probs = np.array([[0.5, 0.5], [0.9, 0.1]])
    assert accuracy(probs, np.array([[1.0, 0.0], [1.0, 0.0]])) == 1.0
    # an all-zero target row must never count as a hit, even though argmax is 0
    assert accuracy(probs, np.array([[1.0, 0.0], [0.0, 0.0]])) == 0.5


def test_trailing_partial_batch_is_dropped():
    net = NeuralNet(4, 5, 3, seed=1)
    X, Y = _toy_problem(rows=10, seed=2)
    stats = net.train_one_epoch(X, Y, batch_size=4)
    assert stats.batches == 2
    assert net.steps == 2
    net.train_one_epoch(X, Y, batch_size=3)
    assert net.steps == 5


def test_dropped_rows_never_influence_parameters():
    X, Y = _toy_problem(rows=10, seed=5)
    X_other = X.copy()
    X_other[8:] = 100.0
    Y_other = Y.copy()
    Y_other[8:] = np.roll(Y[8:], 1, axis=1)

    first = NeuralNet(4, 5, 3, seed=9)
    second = NeuralNet(4, 5, 3, seed=9)
    first.train_one_epoch(X, Y, batch_size=4)
    second.train_one_epoch(X_other, Y_other, batch_size=4)
    for name, value in first.state_dict().items():
        assert np.array_equal(value, second.state_dict()[name]), name


def test_history_appends_once_per_epoch_and_is_read_only():
    net = NeuralNet(4, 5, 3, seed=0)
    X, Y = _toy_problem(rows=8)
    for _ in range(3):
        stats = net.train_one_epoch(X, Y, batch_size=4)
    assert len(net.losses) == len(net.accuracies) == 3
    assert net.losses[-1] == stats.loss
    assert isinstance(net.losses, tuple)
    snapshot = net.losses
    net.train_one_epoch(X, Y, batch_size=4)
    assert len(snapshot) == 3


def test_batch_larger_than_dataset_only_scores():
    net = NeuralNet(4, 5, 3, seed=0)
    X, Y = _toy_problem(rows=3)
    before = net.state_dict()
    stats = net.train_one_epoch(X, Y, batch_size=8)
    assert stats.batches == 0
    assert np.array_equal(before["W1"], net.W1)
    assert len(net.losses) == 1


def test_state_dict_roundtrip_and_validation():
    source = NeuralNet(4, 5, 3, seed=0)
    target = NeuralNet(4, 5, 3, seed=1)
    target.load_state_dict(source.state_dict())
    X, _ = _toy_problem()
    assert np.allclose(source.predict_proba(X), target.predict_proba(X))
    with pytest.raises(KeyError):
        target.load_state_dict({"W1": source.W1})
    bad = dict(source.state_dict())
    bad["W2"] = np.zeros((2, 2))
    with pytest.raises(ShapeError):
        target.load_state_dict(bad)
    assert source.parameter_count() == 4 * 5 + 5 + 5 * 3 + 3
