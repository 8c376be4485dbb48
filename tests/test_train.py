"""Tests for the training driver helpers."""

import chess
import numpy as np

from chess_helper import evaluate_material, evaluate_material_offside
from config import Config
from encoding import encode
from model import SumEvaluationFunction, TreeNode
from search import TruncatedMinimax
from train import make_engine_factory, residual_samples, split_validation


class TestMaterial:
    def test_material_balance(self):
        assert evaluate_material(chess.Board()) == 0.0
        assert evaluate_material(chess.Board("4k3/8/8/4P3/8/8/8/3QK3 w - - 0 1")) == 10.0

    def test_offside_pawns_count_double(self):
        board = chess.Board("4k3/8/8/4P3/8/8/3p4/4K3 w - - 0 1")
        assert evaluate_material(board) == 0.0
        assert evaluate_material_offside(board) == 0.0
        board = chess.Board("4k3/8/8/4P3/8/8/8/4K3 w - - 0 1")
        assert evaluate_material_offside(board) == 2.0


class TestResidualSamples:
    def setup_method(self):
        self.examples = [(chess.Board(), 1.0), (chess.Board("4k3/8/8/8/8/8/8/4K2R w - - 0 1"), -1.0)]

    def test_empty_ensemble_keeps_values(self):
        samples = residual_samples(self.examples, [], extended=False)
        assert [target for _, target in samples] == [1.0, -1.0]
        assert samples[0][0] == encode(chess.Board())

    def test_subtracts_prediction(self):
        samples = residual_samples(self.examples, [TreeNode(mean=0.25)], extended=True)
        assert [target for _, target in samples] == [0.75, -1.25]


class TestSplitValidation:
    def test_sizes(self):
        samples = [((i,), float(i)) for i in range(10)]
        training, validation = split_validation(samples, 0.2, np.random.default_rng(0))
        assert len(training) == 8
        assert len(validation) == 2
        assert sorted(training + validation) == samples

    def test_disabled(self):
        samples = [((0,), 1.0), ((1,), 2.0)]
        training, validation = split_validation(samples, 0.0, np.random.default_rng(0))
        assert training == samples
        assert validation is None


class TestEngineFactory:
    def test_material_only_without_trees(self):
        engine = make_engine_factory([], Config)()
        assert isinstance(engine, TruncatedMinimax)
        assert engine.evaluate is evaluate_material

    def test_trees_are_added_to_material(self):
        factory = make_engine_factory([TreeNode(mean=0.5)], Config)
        first, second = factory(), factory()
        assert first is not second
        assert isinstance(first.evaluate, SumEvaluationFunction)
        assert first.evaluate(chess.Board()) == 0.5

    def test_offside_material_switch(self):
        class OffsideConfig(Config):
            MATERIAL_EVALUATOR = "offside"
        engine = make_engine_factory([], OffsideConfig)()
        assert engine.evaluate is evaluate_material_offside
        assert engine.evaluate(chess.Board("4k3/8/8/4P3/8/8/8/4K3 w - - 0 1")) == 2.0
