import weakref
from bisect import bisect_left

import torch

from encoding import encode


def contains(sorted_features, feature):
    i = bisect_left(sorted_features, feature)
    return i < len(sorted_features) and sorted_features[i] == feature


class TreeNode:
    """
    Regression tree node.

    Samples whose sorted feature list contains ``feature`` go left, the others
    go right. A missing child makes this node the leaf on that side, valued
    ``mean``.
    """

    __slots__ = ("feature", "mean", "left", "right", "_parent", "__weakref__")

    def __init__(self, feature=0, mean=0.0, left=None, right=None):
        self.feature = feature
        self.mean = mean
        self.left = None
        self.right = None
        self._parent = None
        self.set_children(left, right)

    @property
    def parent(self):
        return None if self._parent is None else self._parent()

    def set_children(self, left, right):
        self.left = left
        self.right = right
        for child in (left, right):
            if child is not None:
                child._parent = weakref.ref(self)

    @property
    def is_leaf(self):
        return self.left is None and self.right is None

    @property
    def depth(self):
        depth = 0
        node = self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def evaluate(self, sorted_features):
        node = self
        while True:
            child = node.left if contains(sorted_features, node.feature) else node.right
            if child is None:
                return node.mean
            node = child

    def nodes(self):
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

    def scale(self, strength):
        for node in self.nodes():
            node.mean *= strength

    def to_dict(self):
        return {
            "feature": self.feature,
            "mean": self.mean,
            "left": None if self.left is None else self.left.to_dict(),
            "right": None if self.right is None else self.right.to_dict(),
        }

    @classmethod
    def from_dict(cls, data):
        left = data.get("left")
        right = data.get("right")
        return cls(
            feature=int(data["feature"]),
            mean=float(data["mean"]),
            left=None if left is None else cls.from_dict(left),
            right=None if right is None else cls.from_dict(right),
        )


def predict(trees, sorted_features):
    return sum(tree.evaluate(sorted_features) for tree in trees)


class TreeEvaluationFunction:
    """Evaluation function summing an ensemble over the board's sparse features."""

    def __init__(self, trees, extended=True):
        self.trees = list(trees)
        self.extended = extended

    def __call__(self, board):
        return predict(self.trees, encode(board, self.extended))


class SumEvaluationFunction:
    def __init__(self, *functions):
        self.functions = functions

    def __call__(self, board):
        return sum(function(board) for function in self.functions)


def save_model(trees, path, extended=True):
    torch.save({"extended": extended, "trees": [tree.to_dict() for tree in trees]}, path)


def load_model(path):
    """Returns (trees, extended)."""
    data = torch.load(path, weights_only=True)
    return [TreeNode.from_dict(tree) for tree in data["trees"]], bool(data["extended"])
