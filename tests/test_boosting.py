"""Tests for boosted ensemble training."""

import numpy as np
import pytest

from boosting import apply_l2_decay, train_boosted
from model import TreeNode, predict


class RecordingWriter:
    def __init__(self):
        self.scalars = {}

    def add_scalar(self, tag, value, step):
        self.scalars.setdefault(tag, []).append((step, value))


def make_samples(count=200, features=10, seed=0):
    rng = np.random.default_rng(seed)
    samples = []
    for _ in range(count):
        active = tuple(int(i) for i in np.flatnonzero(rng.random(features) < 0.5))
        target = 4.0 * (0 in active) - 3.0 * (1 in active) + 1.5 * (5 in active)
        samples.append((active, target + rng.normal(scale=0.2)))
    return samples


class TestTrainBoosted:
    def setup_method(self):
        self.samples = make_samples()

    def test_training_loss_never_increases(self):
        writer = RecordingWriter()
        trees = train_boosted(10, 0, 1, self.samples, 8, learning_rate=0.5, l2_decay=1.0, writer=writer)
        losses = [value for _, value in writer.scalars["Loss/train_rmse"]]
        assert len(losses) == len(trees) - 1
        assert all(later <= earlier + 1e-12 for earlier, later in zip(losses, losses[1:]))
        assert "Loss/validation_rmse" not in writer.scalars

    def test_bias_tree_is_mean(self):
        trees = train_boosted(10, 0, 1, self.samples, 3)
        assert trees[0].is_leaf
        assert trees[0].mean == pytest.approx(np.mean([t for _, t in self.samples]))

    def test_no_trees_requested(self):
        assert train_boosted(10, 0, 1, self.samples, 0) == []
        assert train_boosted(10, 0, 1, [], 4) == []

    def test_unsplittable_data_keeps_bias_only(self):
        samples = [((1, 2), value) for value in (1.0, 2.0, 3.0, 6.0)]
        trees = train_boosted(4, 0, 2, samples, 5)
        assert len(trees) == 1
        assert trees[0].mean == 3.0

    def test_improving_validation_keeps_every_tree(self):
        writer = RecordingWriter()
        trees = train_boosted(10, 0, 1, self.samples, 5, validation=self.samples,
                              learning_rate=0.5, writer=writer)
        assert len(trees) == 5
        assert len(writer.scalars["Loss/validation_rmse"]) == 4

    def test_hostile_validation_rolls_back(self):
        validation = [(features, -value) for features, value in self.samples]
        trees = train_boosted(10, 0, 1, self.samples, 8, validation=validation, patience=2)
        assert len(trees) <= 1

    def test_rolls_back_to_best_validation_round(self):
        # each stump halves the remaining residual: predictions 0.5, 0.75, 0.875, ...
        samples = [((0,), 1.0), ((), -1.0)] * 2
        validation = [((0,), 0.8)]
        writer = RecordingWriter()
        trees = train_boosted(1, 0, 0, samples, 10, validation=validation, learning_rate=0.5,
                              patience=1, writer=writer)
        # validation error 0.3, 0.05, then 0.075: the third tree is dropped
        assert len(writer.scalars["Loss/validation_rmse"]) == 3
        assert len(trees) == 2 + 1
        assert predict(trees, (0,)) == pytest.approx(0.75)
        assert predict(trees, ()) == pytest.approx(-0.75)

    def test_decayed_ensemble_matches_training_loss(self):
        writer = RecordingWriter()
        trees = train_boosted(10, 0, 1, self.samples, 5, l2_decay=0.5, writer=writer)
        assert len(trees) == 5
        errors = [target - predict(trees, features) for features, target in self.samples]
        stored_loss = np.sqrt(np.mean(np.square(errors)))
        _, logged_loss = writer.scalars["Loss/train_rmse"][-1]
        assert stored_loss == pytest.approx(logged_loss, rel=1e-9)

    def test_ensemble_fits_training_data(self):
        trees = train_boosted(10, 0, 2, self.samples, 6)
        errors = [predict(trees, features) - target for features, target in self.samples]
        assert np.sqrt(np.mean(np.square(errors))) < 0.5


class TestL2Decay:
    def test_decay_schedule(self):
        trees = [TreeNode(mean=1.0) for _ in range(4)]
        apply_l2_decay(trees, 0.5)
        assert [tree.mean for tree in trees] == [1.0, 0.25, 0.5, 1.0]

    def test_short_ensembles_untouched(self):
        trees = [TreeNode(mean=2.0), TreeNode(mean=3.0)]
        apply_l2_decay(trees, 0.1)
        assert [tree.mean for tree in trees] == [2.0, 3.0]

