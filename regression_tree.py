"""
Regression trees over sparse boolean features.

A sample is a pair ``(sorted_features, target)`` where ``sorted_features`` is an
ascending, duplicate-free sequence of feature indices. Every split tests the
presence of a single feature.
"""

import logging
import math
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from config import Config
from errors import InvariantError
from model import TreeNode, contains

logger = logging.getLogger(__name__)

Split = namedtuple("Split", ["feature", "mean_present", "mean_absent", "residual_std"])


def find_split(max_features, samples):
    """
    Finds the feature whose presence/absence split leaves the least squared error.

    Returns None when fewer than two samples are given, when all targets are
    equal, or when no feature improves on predicting the overall mean.
    """
    counter = np.zeros(max_features, dtype=np.int64)
    presence_sum = np.zeros(max_features, dtype=np.float64)
    count = 0
    total = 0.0
    for features, value in samples:
        count += 1
        total += value
        if len(features):
            index = np.asarray(features, dtype=np.intp)
            counter[index] += 1
            presence_sum[index] += value
    if count < 2:
        return None

    mean = total / count
    best_var = 0.0
    for _, value in samples:
        best_var += (value - mean) ** 2
    if best_var == 0.0:
        return None

    candidates = (counter > 0) & (counter < count)
    if not candidates.any():
        return None
    present_mean = np.zeros(max_features)
    absent_mean = np.zeros(max_features)
    present_mean[candidates] = presence_sum[candidates] / counter[candidates]
    absent_mean[candidates] = (total - presence_sum[candidates]) / (count - counter[candidates])

    variances = np.zeros(max_features)
    for features, value in samples:
        deviation = (value - absent_mean) ** 2
        if len(features):
            index = np.asarray(features, dtype=np.intp)
            deviation[index] = (value - present_mean[index]) ** 2
        variances += deviation
    variances[~candidates] = math.inf

    best = int(np.argmin(variances))
    if not variances[best] < best_var:
        return None
    return Split(best, float(present_mean[best]), float(absent_mean[best]),
                 math.sqrt(float(variances[best]) / count))


def partition(samples, feature):
    present = []
    absent = []
    for sample in samples:
        if contains(sample[0], feature):
            present.append(sample)
        else:
            absent.append(sample)
    return present, absent


def train_tree(max_features, min_leaf_size, max_depth, samples, fan_out=Config.TREE_FAN_OUT):
    """
    Grows a regression tree, or returns None if the root cannot be split.

    ``max_depth`` counts the split levels below the root: 0 gives a single
    split with two leaves.
    """
    return _grow(max_features, min_leaf_size, max_depth, list(samples), fan_out, 0)


def _grow(max_features, min_leaf_size, max_depth, samples, fan_out, level):
    split = find_split(max_features, samples)
    if split is None:
        return None

    node_mean = sum(value for _, value in samples) / len(samples)
    node = TreeNode(feature=split.feature, mean=node_mean)
    logger.debug("Successfully split node with depth = %d on feature %d and loss = %f",
                 level, split.feature, split.residual_std)

    if max_depth <= 0:
        node.set_children(TreeNode(mean=split.mean_present), TreeNode(mean=split.mean_absent))
        return node

    present, absent = partition(samples, split.feature)
    if not present or not absent:
        raise InvariantError("Either side of the split dataset is empty")
    max_depth -= 1
    split_present = len(present) > min_leaf_size
    split_absent = len(absent) > min_leaf_size

    left = right = None
    if split_present and split_absent and len(present) + len(absent) > fan_out:
        with ThreadPoolExecutor(max_workers=2) as executor:
            left_future = executor.submit(_grow, max_features, min_leaf_size, max_depth,
                                          present, fan_out, level + 1)
            right_future = executor.submit(_grow, max_features, min_leaf_size, max_depth,
                                           absent, fan_out, level + 1)
            left = left_future.result()
            right = right_future.result()
    else:
        if split_present:
            left = _grow(max_features, min_leaf_size, max_depth, present, fan_out, level + 1)
        if split_absent:
            right = _grow(max_features, min_leaf_size, max_depth, absent, fan_out, level + 1)

    node.set_children(left if left is not None else TreeNode(mean=split.mean_present),
                      right if right is not None else TreeNode(mean=split.mean_absent))
    return node
