import logging
import os

import numpy as np
from torch.utils.tensorboard import SummaryWriter

from arena import play_match
from boosting import train_boosted
from chess_helper import MATERIAL_EVALUATORS
from config import Config
from encoding import encode, feature_count
from engines import ENGINES
from model import SumEvaluationFunction, TreeEvaluationFunction, predict, save_model
from search import TruncatedMinimax
from selfplay import self_play


def make_engine_factory(trees, config):
    material = MATERIAL_EVALUATORS[config.MATERIAL_EVALUATOR]
    if trees:
        evaluate = SumEvaluationFunction(TreeEvaluationFunction(trees, config.EXTENDED_FEATURES), material)
    else:
        evaluate = material

    def factory():
        return TruncatedMinimax(config.DILUTION_LIMIT, config.ROLLOUT_BEAMS, config.ROLLOUT_DEPTH,
                                evaluate, max_depth=config.MAX_SEARCH_DEPTH)
    return factory


def residual_samples(examples, trees, extended):
    """Encodes (board, value) examples with the current ensemble's residual as target."""
    samples = []
    for board, value in examples:
        features = encode(board, extended)
        samples.append((features, value - predict(trees, features)))
    return samples


def split_validation(samples, fraction, rng):
    if fraction <= 0 or len(samples) < 2:
        return samples, None
    order = rng.permutation(len(samples))
    cut = max(1, int(len(samples) * fraction))
    validation = [samples[i] for i in order[:cut]]
    training = [samples[i] for i in order[cut:]]
    return training, validation


def main(config=Config):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    writer = SummaryWriter(config.LOG_DIR)
    rng = np.random.default_rng()
    trees = []
    max_features = feature_count(config.EXTENDED_FEATURES)

    for iteration in range(1, config.NUM_ITERATIONS + 1):
        print(f"Train batch #{iteration}")
        print("Collecting data from self-play...")
        examples = self_play(make_engine_factory(trees, config), config.NUM_SELFPLAY_GAMES,
                             config.NUM_WORKERS, config.QUEUE_SIZE, config.USE_AUGMENT_SYMMETRIES,
                             config.PGN_DIR, no_progress_limit=config.NO_PROGRESS_LIMIT,
                             max_game_length=config.MAX_GAME_LENGTH, value_scale=config.VALUE_SCALE)
        writer.add_scalar('Data/positions', len(examples), iteration)

        print("Analyzing self-play data...")
        samples = residual_samples(examples, trees, config.EXTENDED_FEATURES)
        training, validation = split_validation(samples, config.VALIDATION_FRACTION, rng)
        new_trees = train_boosted(max_features, config.MIN_LEAF_SIZE, config.MAX_TREE_DEPTH, training,
                                  config.MAX_TREES, validation, config.LEARNING_RATE, config.L2_DECAY,
                                  config.EARLY_STOPPING_PATIENCE, writer, config.TREE_FAN_OUT)
        if not new_trees:
            print(f"Early stopping at iteration {iteration}")
            break
        trees.extend(new_trees)
        writer.add_scalar('Model/trees', len(trees), iteration)
        nodes = [node for tree in new_trees for node in tree.nodes()]
        writer.add_scalar('Model/leaves', sum(node.is_leaf for node in nodes), iteration)
        writer.add_scalar('Model/max_depth', max(node.depth for node in nodes), iteration)

        if iteration % config.SAVE_INTERVAL == 0:
            os.makedirs(config.MODEL_DIR, exist_ok=True)
            save_model(trees, f"{config.MODEL_DIR}/model_iter_{iteration}.pt", config.EXTENDED_FEATURES)
            if config.NUM_ARENA_GAMES > 0:
                print(f"Playing {config.NUM_ARENA_GAMES} arena games against {config.ARENA_OPPONENT}...")
                result = play_match(make_engine_factory(trees, config)(), ENGINES[config.ARENA_OPPONENT](),
                                    config.NUM_ARENA_GAMES, config.MAX_GAME_LENGTH)
                writer.add_scalar('Arena/score', result.score, iteration)
    writer.close()
    return trees


if __name__ == '__main__':
    main()
