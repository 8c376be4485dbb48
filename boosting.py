"""
Gradient boosting of sparse regression trees.

Tree 0 is a constant bias at the training mean; every further tree is fit to
the damped residual of the ensemble so far. With a validation set the ensemble
is cut back to the size that scored best on it.
"""

import logging
import math

import numpy as np

from config import Config
from model import TreeNode
from regression_tree import train_tree

logger = logging.getLogger(__name__)


def _rmse(errors):
    return math.sqrt(float(np.mean(errors ** 2)))


def apply_l2_decay(trees, l2_decay):
    """
    Scales tree k by ``l2_decay ** (n - 1 - k)``, leaving the bias and the last tree alone.

    During training the running prediction decays every earlier tree once per
    round; this bakes the same decay into the stored means.
    """
    strength = l2_decay
    for tree in reversed(trees[1:-1]):
        tree.scale(strength)
        strength *= l2_decay


def train_boosted(max_features, min_leaf_size, max_depth, samples, max_trees, validation=None,
                  learning_rate=Config.LEARNING_RATE, l2_decay=Config.L2_DECAY,
                  patience=Config.EARLY_STOPPING_PATIENCE, writer=None, fan_out=Config.TREE_FAN_OUT):
    """
    Trains up to ``max_trees`` trees (bias included) on ``(sorted_features, target)`` samples.

    Training stops when a tree cannot split its root, when ``max_trees`` is
    reached, or after ``patience`` consecutive rounds without validation
    improvement. ``writer`` may be a tensorboard SummaryWriter.
    """
    samples = list(samples)
    if max_trees < 1 or not samples:
        return []

    features = [sample[0] for sample in samples]
    truth = np.array([sample[1] for sample in samples], dtype=np.float64)
    bias = float(truth.mean())
    truth -= bias
    prediction = np.zeros_like(truth)
    ensemble = [TreeNode(mean=bias)]

    best_size = None
    if validation is not None:
        validation = list(validation)
        if validation:
            validation_features = [sample[0] for sample in validation]
            raw = np.array([sample[1] for sample in validation], dtype=np.float64)
            validation_truth = raw - bias
            validation_prediction = np.zeros_like(validation_truth)
            best_loss = float(np.sum(validation_truth ** 2))
            zero_loss = float(np.sum(raw ** 2))
            if best_loss < zero_loss:
                best_size = 1
            else:
                best_loss = zero_loss
                best_size = 0
            logger.info("Baseline validation loss: %f", math.sqrt(best_loss / len(validation)))

    stale = 0
    residual = truth
    while len(ensemble) < max_trees:
        logger.info("Start training tree #%d", len(ensemble))
        targets = list(zip(features, (residual * learning_rate).tolist()))
        tree = train_tree(max_features, min_leaf_size, max_depth, targets, fan_out)
        if tree is None:
            logger.info("Abort training early, unable to split root node")
            break
        ensemble.append(tree)
        step = len(ensemble) - 1

        prediction = prediction * l2_decay + np.array([tree.evaluate(f) for f in features])
        residual = truth - prediction
        loss = _rmse(residual)
        logger.info("Training loss: %f", loss)
        if writer is not None:
            writer.add_scalar("Loss/train_rmse", loss, step)

        if best_size is None:
            continue
        validation_prediction = validation_prediction * l2_decay + np.array(
            [tree.evaluate(f) for f in validation_features])
        errors = validation_truth - validation_prediction
        validation_loss = float(np.sum(errors ** 2))
        logger.info("Cross-validation loss: %f", math.sqrt(validation_loss / len(validation)))
        if writer is not None:
            writer.add_scalar("Loss/validation_rmse", math.sqrt(validation_loss / len(validation)), step)
        if validation_loss < best_loss:
            best_loss = validation_loss
            best_size = len(ensemble)
            stale = 0
        else:
            stale += 1
            if stale >= patience:
                logger.info("Early stopping...")
                break

    if best_size is not None and best_size < len(ensemble):
        del ensemble[best_size:]
    if l2_decay < 1.0:
        apply_l2_decay(ensemble, l2_decay)
    return ensemble
